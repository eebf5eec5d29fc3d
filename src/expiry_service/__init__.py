"""Perishable inventory tracking: product catalog, dated batches and expiry status."""
from __future__ import annotations

from .dates import CalendarDate, expiry_date, parse_calendar_date, remaining_days, today_in
from .status import ExpiryStatus, classify

__all__ = [
    "CalendarDate",
    "ExpiryStatus",
    "classify",
    "expiry_date",
    "parse_calendar_date",
    "remaining_days",
    "today_in",
]
