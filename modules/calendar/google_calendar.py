"""One day of a Google calendar, read through the service account."""
import logging
from datetime import date
from typing import Optional

from common.auth.google import get_calendar_service
from common.config import get_config
from common.errors import ValidationError
from modules.tasks.recurrence import today_in

logger = logging.getLogger(__name__)

UNTITLED = "Sem título"


def day_bounds(day: date, utc_offset: str) -> tuple[str, str]:
    """RFC 3339 start/end of a calendar day at a fixed offset."""
    return f"{day.isoformat()}T00:00:00{utc_offset}", f"{day.isoformat()}T23:59:59{utc_offset}"


def simplify_event(item: dict) -> dict:
    start = item.get("start") or {}
    end = item.get("end") or {}
    return {
        "summary": item.get("summary") or UNTITLED,
        "start": start.get("dateTime") or start.get("date"),
        "end": end.get("dateTime") or end.get("date"),
        "attendees": [a.get("email") for a in item.get("attendees") or []],
        "status": item.get("status"),
        "hangoutLink": item.get("hangoutLink"),
    }


def fetch_day_events(calendar_id: str, day: Optional[date] = None,
                     calendar_service=None, utc_offset: Optional[str] = None) -> list[dict]:
    """Events of `calendar_id` on `day`, expanded and ordered by start time."""
    if not calendar_id:
        raise ValidationError("calendar_id required")
    config = get_config()
    day = day or today_in(config.schedule.timezone)
    utc_offset = utc_offset or config.google.calendar_utc_offset
    time_min, time_max = day_bounds(day, utc_offset)

    service = calendar_service or get_calendar_service()
    result = service.events().list(
        calendarId=calendar_id,
        timeMin=time_min,
        timeMax=time_max,
        singleEvents=True,
        orderBy="startTime",
    ).execute()

    events = [simplify_event(item) for item in result.get("items", [])]
    logger.info(f"Fetched {len(events)} events from {calendar_id} for {day}")
    return events
