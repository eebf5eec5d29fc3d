"""Calendar date arithmetic for shelf-life tracking.

All values handled here are :class:`datetime.date` instances: a year, month
and day with no time of day and no offset. Subtracting two dates yields a
whole number of calendar days no matter which timezone the host runs in.

Timestamps only enter through :func:`calendar_date_from_timestamp` and
:func:`today_in`, which convert to the wall calendar of an explicit zone and
drop the time component. Nothing in this module reads the clock implicitly;
``today`` is always a parameter.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from .exceptions import InvalidInput

CalendarDate = date

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


def parse_calendar_date(value: str | date) -> CalendarDate:
    """Parse an ISO ``YYYY-MM-DD`` string.

    Datetimes are refused rather than truncated, since truncating a
    UTC timestamp in another zone is exactly how a batch lands on the wrong
    day.
    """
    if isinstance(value, datetime):
        raise InvalidInput("Expected a calendar date, got a timestamp", value=str(value))
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not _ISO_DATE.fullmatch(text):
        raise InvalidInput(f"Invalid date {text!r}, expected YYYY-MM-DD", value=text)
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidInput(f"Invalid date {text!r}, expected YYYY-MM-DD", value=text) from exc


def calendar_date_from_timestamp(moment: datetime, tz: str | ZoneInfo) -> CalendarDate:
    """Return the calendar date of ``moment`` as seen on a wall clock in ``tz``."""

    if moment.tzinfo is None:
        raise InvalidInput("Naive timestamps cannot be converted to a calendar date")
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    return moment.astimezone(zone).date()


def today_in(tz: str | ZoneInfo, now: datetime | None = None) -> CalendarDate:
    """Derive "today" for the edge of the system (request handlers, CLI)."""

    moment = now if now is not None else datetime.now(timezone.utc)
    return calendar_date_from_timestamp(moment, tz)


def expiry_date(production_date: CalendarDate, shelf_life_days: int) -> CalendarDate:
    return production_date + timedelta(days=shelf_life_days)


def reminder_date(expiry: CalendarDate, reminder_days: int) -> CalendarDate:
    """First day on which the batch is inside its reminder window."""

    return expiry - timedelta(days=reminder_days)


def remaining_days(expiry: CalendarDate, today: CalendarDate) -> int:
    """Whole days from ``today`` until ``expiry``; ``<= 0`` once expiry is reached."""

    return (expiry - today).days


def remaining_days_for(
    production_date: CalendarDate, shelf_life_days: int, today: CalendarDate
) -> int:
    return remaining_days(expiry_date(production_date, shelf_life_days), today)


__all__ = [
    "CalendarDate",
    "parse_calendar_date",
    "calendar_date_from_timestamp",
    "today_in",
    "expiry_date",
    "reminder_date",
    "remaining_days",
    "remaining_days_for",
]
