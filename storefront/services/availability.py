"""
Availability Window Check

Open/closed status from the weekly schedule. Days are numbered Sunday = 0
to Saturday = 6. A day without a stored record, with the closed flag set,
or with a missing open/close time is closed; otherwise the business is open
from open_time to close_time, both minutes included.
"""

from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

from storefront.core.config import get_settings


@dataclass(frozen=True)
class Availability:
    is_open: bool
    day_of_week: int
    today_hours: Optional[Any] = None


def day_of_week(moment: datetime) -> int:
    """Sunday-based weekday number (Sunday = 0)."""
    return moment.isoweekday() % 7


def local_now() -> datetime:
    return datetime.now(ZoneInfo(get_settings().timezone))


def _minute(value: time) -> time:
    return value.replace(second=0, microsecond=0, tzinfo=None)


def is_within(open_time: time, close_time: time, current: time) -> bool:
    return _minute(open_time) <= _minute(current) <= _minute(close_time)


def check_availability(hours: Iterable[Any], now: Optional[datetime] = None) -> Availability:
    """
    Work out whether the business is open.

    Args:
        hours: OpeningHours-like records (day_of_week, open_time, close_time, is_closed)
        now: Moment to check, in the business timezone; defaults to the current time

    Returns:
        Availability with today's record (or None when there is none)
    """
    now = now or local_now()
    today = day_of_week(now)
    todays = next((h for h in hours if h.day_of_week == today), None)

    if todays is None or todays.is_closed:
        return Availability(False, today, todays)
    if todays.open_time is None or todays.close_time is None:
        return Availability(False, today, todays)

    return Availability(is_within(todays.open_time, todays.close_time, now.time()), today, todays)
