"""Tasks: CRUD with history and the recurring-task roller."""
