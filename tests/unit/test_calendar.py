"""
Unit Tests for Calendar Sources

Cal.com bookings mapped to portal events (with a short-lived query
cache) and one day of a Google calendar.
"""
from datetime import date
from unittest.mock import MagicMock

import httpx
import pytest

import modules.calendar.google_calendar as google_calendar_mod
from common.config import CalComConfig
from common.errors import ConfigurationError, UpstreamError, ValidationError
from common.query_cache import QueryCache
from modules.calendar.calcom import CalComClient, booking_to_event, fetch_calcom_events
from modules.calendar.google_calendar import day_bounds, fetch_day_events, simplify_event
from tests.fixtures.hub import CALCOM_BOOKING


def calcom_client(handler, api_key="test-cal-key"):
    return CalComClient(CalComConfig(api_key=api_key), transport=httpx.MockTransport(handler))


class TestBookingToEvent:

    def test_maps_booking(self):
        event = booking_to_event(CALCOM_BOOKING)

        assert event["id"] == "calcom-4411"
        assert event["event_date"] == "2026-03-10"
        assert event["event_time"] == "13:00:00"
        assert event["duration_minutes"] == 45
        assert event["participants"] == ["Joana Silva", "socio@example.com"]
        assert event["attendee_emails"] == ["joana@example.com", "socio@example.com"]
        assert event["attendee_phones"] == ["+5511999990000"]
        assert event["meeting_link"] == "https://meet.google.com/abc-defg-hij"
        assert event["source"] == "calcom"
        assert event["color"] == "#f97316"
        assert event["booking_status"] == "accepted"

    def test_offset_times_are_converted_to_utc(self):
        booking = dict(CALCOM_BOOKING, start="2026-03-10T22:30:00-03:00",
                       end="2026-03-10T23:00:00-03:00", status=None)
        event = booking_to_event(booking, "past")
        assert (event["event_date"], event["event_time"]) == ("2026-03-11", "01:30:00")
        assert event["booking_status"] == "past"

    def test_title_fallbacks(self):
        untitled = {k: v for k, v in CALCOM_BOOKING.items() if k != "title"}
        assert booking_to_event(untitled)["title"] == "Cal.com Meeting"
        typed = dict(untitled, eventType={"title": "Mentoria"})
        assert booking_to_event(typed)["title"] == "Mentoria"


class TestCalComClient:

    @pytest.mark.asyncio
    async def test_sends_window_and_version(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["headers"] = request.headers
            return httpx.Response(200, json={"status": "success", "data": [CALCOM_BOOKING]})

        bookings = await calcom_client(handler).list_bookings(
            "upcoming", date(2026, 3, 1), date(2026, 3, 31)
        )

        assert bookings == [CALCOM_BOOKING]
        assert seen["params"] == {
            "status": "upcoming",
            "afterStart": "2026-03-01T00:00:00.000Z",
            "beforeEnd": "2026-03-31T23:59:59.999Z",
        }
        assert seen["headers"]["authorization"] == "Bearer test-cal-key"
        assert seen["headers"]["cal-api-version"] == "2024-08-13"

    @pytest.mark.asyncio
    async def test_api_error(self):
        client = calcom_client(lambda request: httpx.Response(403, text="forbidden"))
        with pytest.raises(UpstreamError) as exc:
            await client.list_bookings()
        assert exc.value.status_code == 403
        assert exc.value.to_dict()["details"] == "forbidden"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            await calcom_client(lambda request: httpx.Response(200), api_key="").list_bookings()

    @pytest.mark.asyncio
    async def test_events_are_cached_per_query(self):
        calls = []

        def handler(request):
            calls.append(request.url.params["status"])
            return httpx.Response(200, json={"data": [CALCOM_BOOKING]})

        client = calcom_client(handler)
        cache = QueryCache(ttl_seconds=60)

        first = await fetch_calcom_events("upcoming", client=client, cache=cache)
        second = await fetch_calcom_events("upcoming", client=client, cache=cache)
        await fetch_calcom_events("past", client=client, cache=cache)

        assert first == second
        assert first[0]["id"] == "calcom-4411"
        assert calls == ["upcoming", "past"]


class TestGoogleCalendar:

    def test_day_bounds(self):
        assert day_bounds(date(2026, 3, 10), "-03:00") == (
            "2026-03-10T00:00:00-03:00",
            "2026-03-10T23:59:59-03:00",
        )

    def test_simplify_event(self):
        simple = simplify_event({
            "start": {"date": "2026-03-10"},
            "end": {"date": "2026-03-11"},
            "attendees": [{"email": "a@b.com"}],
        })
        assert simple["summary"] == "Sem título"
        assert simple["start"] == "2026-03-10"
        assert simple["attendees"] == ["a@b.com"]

    def test_fetch_day_events(self):
        service = MagicMock()
        service.events.return_value.list.return_value.execute.return_value = {
            "items": [{
                "summary": "Reunião com patrocinador",
                "start": {"dateTime": "2026-03-10T10:00:00-03:00"},
                "end": {"dateTime": "2026-03-10T11:00:00-03:00"},
                "status": "confirmed",
                "hangoutLink": "https://meet.google.com/xyz",
            }]
        }

        events = fetch_day_events("agenda@boranaobra.com.br", date(2026, 3, 10), service)

        assert events[0]["summary"] == "Reunião com patrocinador"
        assert events[0]["hangoutLink"] == "https://meet.google.com/xyz"
        service.events.return_value.list.assert_called_once_with(
            calendarId="agenda@boranaobra.com.br",
            timeMin="2026-03-10T00:00:00-03:00",
            timeMax="2026-03-10T23:59:59-03:00",
            singleEvents=True,
            orderBy="startTime",
        )

    def test_calendar_id_required(self):
        with pytest.raises(ValidationError):
            fetch_day_events("", date(2026, 3, 10), MagicMock())

    def test_default_day_is_today_in_configured_timezone(self, monkeypatch, hub_config):
        zones = []

        def fake_today(tz_name):
            zones.append(tz_name)
            return date(2026, 3, 11)

        monkeypatch.setattr(google_calendar_mod, "today_in", fake_today)
        service = MagicMock()
        service.events.return_value.list.return_value.execute.return_value = {"items": []}

        fetch_day_events("agenda@boranaobra.com.br", calendar_service=service)

        assert zones == [hub_config.schedule.timezone]
        kwargs = service.events.return_value.list.call_args.kwargs
        assert kwargs["timeMin"].startswith("2026-03-11T00:00:00")
