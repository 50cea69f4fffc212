"""Date rules shared by the booking calendar screens.

Bookings are expressed in the venue's local time (Europe/London by
default). The booking API is the source of truth for both rules; these
helpers only decide what the calendar offers (cancel buttons, the range of
the date picker).
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from dateutil import tz

CANCELLATION_NOTICE = timedelta(hours=24)
DEFAULT_VENUE_TIMEZONE = "Europe/London"


def _venue_tz(tz_name: str):
    zone = tz.gettz(tz_name)
    if zone is None:
        raise ValueError(f"Unknown time zone: {tz_name}")
    return zone


def venue_today(tz_name: str = DEFAULT_VENUE_TIMEZONE, now: Optional[datetime] = None) -> date:
    """Return today's date at the venue."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(_venue_tz(tz_name)).date()


def can_cancel_booking(
    booking_date: str,
    start_time: str,
    now: Optional[datetime] = None,
    tz_name: str = DEFAULT_VENUE_TIMEZONE,
) -> bool:
    """True if the booking starts at least 24 hours after ``now``.

    ``booking_date`` is ``YYYY-MM-DD`` and ``start_time`` ``HH:mm`` (seconds
    are ignored), both in venue time. A naive ``now`` is taken as UTC.
    Malformed values return False.
    """
    try:
        year, month, day = (int(part) for part in booking_date.split("-"))
        hour, minute = (int(part) for part in start_time[:5].split(":"))
        start_local = datetime(year, month, day, hour, minute, tzinfo=_venue_tz(tz_name))
    except (AttributeError, TypeError, ValueError):
        return False
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return start_local - now >= CANCELLATION_NOTICE


def max_booking_date(today: date) -> date:
    """Latest date bookable from ``today``: the same day next month.

    The day is clamped to the length of the target month, so 31 January
    gives the last day of February.
    """
    if today.month == 12:
        year, month = today.year + 1, 1
    else:
        year, month = today.year, today.month + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(today.day, last_day))
