"""Funnel daily reports and their relay to the external webhook."""
