"""Recurring task date roller.

Pure date arithmetic: fixed day offsets per recurrence type, and a
weekend shift so instances never fall on Saturday or Sunday.
"""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo


class Recurrence(str, Enum):
    NONE = 'none'
    DAILY = 'daily'
    WEEKLY = 'weekly'
    BIWEEKLY = 'biweekly'
    MONTHLY = 'monthly'
    SEMIANNUAL = 'semiannual'
    YEARLY = 'yearly'


RECURRENCE_DAYS = {
    Recurrence.DAILY: 1,
    Recurrence.WEEKLY: 7,
    Recurrence.BIWEEKLY: 14,
    Recurrence.MONTHLY: 30,
    Recurrence.SEMIANNUAL: 182,
    Recurrence.YEARLY: 365,
}


def is_recurring(recurrence: Optional[str]) -> bool:
    return bool(recurrence) and recurrence != Recurrence.NONE.value


def skip_weekend(d: date) -> date:
    """Saturday -> Monday (+2), Sunday -> Monday (+1), weekdays unchanged."""
    weekday = d.weekday()
    if weekday == 5:
        return d + timedelta(days=2)
    if weekday == 6:
        return d + timedelta(days=1)
    return d


def next_due_date(current: date, recurrence: str) -> date:
    """Next due date for a recurrence type. Unknown types roll by one day."""
    try:
        days = RECURRENCE_DAYS.get(Recurrence(recurrence), 1)
    except ValueError:
        days = 1
    return skip_weekend(current + timedelta(days=days))


def today_in(tz_name: str, now: Optional[datetime] = None) -> date:
    """Calendar date of 'now' in the given timezone."""
    tz = ZoneInfo(tz_name)
    if now is None:
        return datetime.now(tz).date()
    return now.astimezone(tz).date()
