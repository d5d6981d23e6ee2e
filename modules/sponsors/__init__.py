"""Sponsor prospecting kanban."""
