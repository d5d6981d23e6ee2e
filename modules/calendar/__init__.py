"""External calendars: Cal.com bookings and Google Calendar days."""
