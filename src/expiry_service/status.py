"""Expiry status classification and listing order."""
from __future__ import annotations

import enum
from datetime import date
from typing import Protocol

from .dates import expiry_date, remaining_days, reminder_date


class ExpiryStatus(str, enum.Enum):
    EXPIRED = "expired"
    WARNING = "warning"
    NORMAL = "normal"

    @property
    def ordinal(self) -> int:
        return _ORDINALS[self]


_ORDINALS = {
    ExpiryStatus.EXPIRED: 0,
    ExpiryStatus.WARNING: 1,
    ExpiryStatus.NORMAL: 2,
}


def classify(remaining: int, reminder_days: int) -> ExpiryStatus:
    if remaining <= 0:
        return ExpiryStatus.EXPIRED
    if remaining <= reminder_days:
        return ExpiryStatus.WARNING
    return ExpiryStatus.NORMAL


class Batch(Protocol):
    sku: str
    production_date: date
    shelf_life_days: int
    reminder_days: int


class Assessment:
    """Date-derived fields of one batch, evaluated against a given ``today``."""

    __slots__ = ("expiry_date", "reminder_date", "remaining_days", "status")

    def __init__(self, batch: Batch, today: date) -> None:
        self.expiry_date = expiry_date(batch.production_date, batch.shelf_life_days)
        self.reminder_date = reminder_date(self.expiry_date, batch.reminder_days)
        self.remaining_days = remaining_days(self.expiry_date, today)
        self.status = classify(self.remaining_days, batch.reminder_days)


def assess(batch: Batch, today: date) -> Assessment:
    return Assessment(batch, today)


def sort_key(batch: Batch, assessment: Assessment, tiebreak: int = 0) -> tuple:
    """Expired first, then Warning, then Normal; soonest expiry first within a status.

    Ties fall back to ``(sku, production_date, tiebreak)`` so listings are
    deterministic.
    """
    return (
        assessment.status.ordinal,
        assessment.remaining_days,
        batch.sku,
        batch.production_date,
        tiebreak,
    )


__all__ = ["ExpiryStatus", "Assessment", "assess", "classify", "sort_key"]
