"""Read models combining the ledger with expiry classification."""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from . import catalog, ledger
from .models import Product, Record
from .status import ExpiryStatus, assess, sort_key


@dataclass(frozen=True)
class AssessedRecord:
    record: Record
    expiry_date: date
    reminder_date: date
    remaining_days: int
    status: ExpiryStatus


@dataclass(frozen=True)
class Preview:
    product: Product
    production_date: date
    expiry_date: date
    reminder_date: date
    remaining_days: int
    status: ExpiryStatus


def rank(records: Iterable[Record], today: date) -> list[AssessedRecord]:
    """Annotate ``records`` for ``today`` and order them for display."""

    keyed = []
    for record in records:
        assessment = assess(record, today)
        item = AssessedRecord(
            record=record,
            expiry_date=assessment.expiry_date,
            reminder_date=assessment.reminder_date,
            remaining_days=assessment.remaining_days,
            status=assessment.status,
        )
        keyed.append((sort_key(record, assessment, record.duplicate_index), item))
    keyed.sort(key=lambda pair: pair[0])
    return [item for _, item in keyed]


async def all_records(
    session: AsyncSession, account_id: str, today: date, sku: str | None = None
) -> list[AssessedRecord]:
    if sku is None:
        records = await ledger.list_records(session, account_id)
    else:
        records = await ledger.list_records_by_sku(session, account_id, sku)
    return rank(records, today)


async def expiring(session: AsyncSession, account_id: str, today: date) -> list[AssessedRecord]:
    ranked = await all_records(session, account_id, today)
    return [item for item in ranked if item.status is not ExpiryStatus.NORMAL]


async def catalog_listing(session: AsyncSession, account_id: str) -> Sequence[Product]:
    return await catalog.list_products(session, account_id)


async def preview(
    session: AsyncSession, account_id: str, sku: str, production_date: date, today: date
) -> Preview | None:
    """Expiry figures for a batch that has not been logged yet."""

    product = await catalog.get_product(session, account_id, sku)
    if product is None:
        return None
    assessment = assess(
        Record(
            sku=product.sku,
            production_date=production_date,
            shelf_life_days=product.shelf_life_days,
            reminder_days=product.reminder_days,
        ),
        today,
    )
    return Preview(
        product=product,
        production_date=production_date,
        expiry_date=assessment.expiry_date,
        reminder_date=assessment.reminder_date,
        remaining_days=assessment.remaining_days,
        status=assessment.status,
    )


__all__ = ["AssessedRecord", "Preview", "rank", "all_records", "expiring", "catalog_listing", "preview"]
