"""Cal.com bookings as portal calendar events.

Bookings are fetched from the v2 API and mapped to the same shape as
local `events` rows so the calendar views can merge both sources.
"""
import logging
from datetime import date, datetime, timezone
from typing import Optional

import httpx

from common.config import CalComConfig, get_config
from common.errors import ConfigurationError, UpstreamError
from common.query_cache import QueryCache

logger = logging.getLogger(__name__)

EVENT_COLOR = "#f97316"
EVENT_TYPE = "reuniao"
DEFAULT_TITLE = "Cal.com Meeting"

bookings_cache = QueryCache(ttl_seconds=120)


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00")).astimezone(timezone.utc)


def booking_to_event(booking: dict, status: str = "upcoming") -> dict:
    """Map one Cal.com booking to a calendar event dict (UTC date/time)."""
    start = _parse_ts(booking["start"])
    end = _parse_ts(booking["end"])
    attendees = booking.get("attendees") or []
    event_type = booking.get("eventType") or {}
    metadata = booking.get("metadata") or {}

    return {
        "id": f"calcom-{booking['id']}",
        "title": booking.get("title") or event_type.get("title") or DEFAULT_TITLE,
        "event_date": start.date().isoformat(),
        "event_time": start.strftime("%H:%M:%S"),
        "duration_minutes": round((end - start).total_seconds() / 60),
        "meeting_link": booking.get("meetingUrl") or metadata.get("videoCallUrl"),
        "location": booking.get("location"),
        "event_type": EVENT_TYPE,
        "color": EVENT_COLOR,
        "description": booking.get("description"),
        "participants": [a.get("name") or a.get("email") for a in attendees],
        "attendee_emails": [
            a["email"].strip().lower() for a in attendees if (a.get("email") or "").strip()
        ],
        "attendee_phones": [
            a.get("phone") or a.get("phoneNumber") for a in attendees
            if a.get("phone") or a.get("phoneNumber")
        ],
        "booking_status": booking.get("status") or status,
        "source": "calcom",
        "created_at": booking.get("createdAt"),
        "updated_at": booking.get("updatedAt"),
        "created_by": None,
        "is_recurring_instance": None,
        "parent_event_id": None,
        "recurrence": None,
        "recurrence_end_date": None,
    }


class CalComClient:
    """Cal.com v2 bookings adapter over httpx."""

    def __init__(self, config: Optional[CalComConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or get_config().calcom
        self._transport = transport

    async def list_bookings(self, status: str = "upcoming",
                            date_from: Optional[date] = None,
                            date_to: Optional[date] = None) -> list[dict]:
        if not self.config.api_key:
            raise ConfigurationError("CAL_COM_API_KEY not configured")

        params = {"status": status}
        if date_from:
            params["afterStart"] = f"{date_from.isoformat()}T00:00:00.000Z"
        if date_to:
            params["beforeEnd"] = f"{date_to.isoformat()}T23:59:59.999Z"

        logger.info(f"Fetching Cal.com bookings: {params}")
        async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
            resp = await client.get(
                f"{self.config.base_url.rstrip('/')}/bookings",
                params=params,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "cal-api-version": self.config.api_version,
                    "Content-Type": "application/json",
                },
            )
        if resp.status_code >= 400:
            logger.error(f"Cal.com API error: {resp.status_code} {resp.text}")
            raise UpstreamError("Cal.com API error", resp.status_code, details=resp.text)
        return resp.json().get("data") or []


async def fetch_calcom_events(status: str = "upcoming",
                              date_from: Optional[date] = None,
                              date_to: Optional[date] = None,
                              client: Optional[CalComClient] = None,
                              cache: QueryCache = bookings_cache) -> list[dict]:
    """Calendar events for the given window, cached briefly per query."""
    client = client or CalComClient()

    async def load() -> list[dict]:
        bookings = await client.list_bookings(status, date_from, date_to)
        return [booking_to_event(b, status) for b in bookings]

    return await cache.get(("calcom", status, date_from, date_to), load)
