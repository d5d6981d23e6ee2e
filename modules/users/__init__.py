"""User administration: account creation and password reset.

Accounts live in the hosted auth provider; this module calls its admin
API and keeps the local profile and role rows in step.
"""
