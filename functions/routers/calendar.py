"""Calendar functions: Cal.com bookings and Google Calendar days."""
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from common.auth.tokens import AuthContext
from modules.calendar.calcom import CalComClient, fetch_calcom_events
from modules.calendar.google_calendar import fetch_day_events

from ..deps import get_auth_context, get_calcom_client, get_calendar

router = APIRouter()


class GoogleCalendarRequest(BaseModel):
    calendar_id: Optional[str] = None
    date: Optional[dt.date] = None


@router.get("/fetch-calcom-events")
async def calcom_events(
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    status: str = "upcoming",
    caller: AuthContext = Depends(get_auth_context),
    client: CalComClient = Depends(get_calcom_client),
):
    events = await fetch_calcom_events(status, date_from, date_to, client=client)
    return {"data": events}


@router.post("/fetch-google-calendar-events")
def google_calendar_events(
    body: GoogleCalendarRequest,
    caller: AuthContext = Depends(get_auth_context),
    calendar_service=Depends(get_calendar),
):
    return {"events": fetch_day_events(body.calendar_id, body.date, calendar_service)}
