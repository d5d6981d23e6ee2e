"""In-app notifications for portal users."""
