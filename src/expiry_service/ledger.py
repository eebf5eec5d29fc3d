"""Batch ledger operations and the duplicate guard.

Logging a batch is a two step protocol. A plain create always claims
``duplicate_index`` 0 for its (account, sku, production date) key, so the
unique constraint lets exactly one of several concurrent creators through
and the rest receive :class:`Conflict` carrying the batch already on file.
The caller may then repeat the create with ``confirm_duplicate`` set, which
skips that claim and files the batch under the next free index, retrying
with a fresh index if a concurrent confirmation took it first.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from . import schemas
from .catalog import get_product, validate_sku
from .database import storage_errors
from .exceptions import Conflict, InvalidInput, StorageUnavailable
from .models import Product, Record

logger = logging.getLogger(__name__)

CONFIRM_ATTEMPTS = 5


async def list_records(session: AsyncSession, account_id: str) -> Sequence[Record]:
    stmt = select(Record).where(Record.account_id == account_id).order_by(Record.id)
    with storage_errors():
        result = await session.execute(stmt)
    return result.scalars().all()


async def list_records_by_sku(
    session: AsyncSession, account_id: str, sku: str
) -> Sequence[Record]:
    stmt = (
        select(Record)
        .where(Record.account_id == account_id, Record.sku == sku)
        .order_by(Record.id)
    )
    with storage_errors():
        result = await session.execute(stmt)
    return result.scalars().all()


async def find_batches(
    session: AsyncSession, account_id: str, sku: str, production_date: date
) -> Sequence[Record]:
    stmt = (
        select(Record)
        .where(
            Record.account_id == account_id,
            Record.sku == sku,
            Record.production_date == production_date,
        )
        .order_by(Record.duplicate_index)
    )
    with storage_errors():
        result = await session.execute(stmt)
    return result.scalars().all()


async def _next_duplicate_index(
    session: AsyncSession, account_id: str, sku: str, production_date: date
) -> int:
    stmt = select(func.max(Record.duplicate_index)).where(
        Record.account_id == account_id,
        Record.sku == sku,
        Record.production_date == production_date,
    )
    with storage_errors():
        current = (await session.execute(stmt)).scalar_one_or_none()
    return 0 if current is None else current + 1


def _snapshot(
    account_id: str, product: Product, data: schemas.RecordCreate, index: int
) -> Record:
    return Record(
        account_id=account_id,
        sku=product.sku,
        name=product.name,
        production_date=data.production_date,
        shelf_life_days=product.shelf_life_days,
        reminder_days=product.reminder_days,
        location=data.location or product.location,
        duplicate_index=index,
    )


async def _insert_confirmed(
    session: AsyncSession, account_id: str, product: Product, data: schemas.RecordCreate
) -> Record:
    """File a confirmed duplicate under the next free index.

    Each attempt runs in a savepoint; losing the index to a concurrent
    confirmation rolls back only that attempt and the index is read again.
    """
    last_error: IntegrityError | None = None
    for _ in range(CONFIRM_ATTEMPTS):
        index = await _next_duplicate_index(session, account_id, data.sku, data.production_date)
        record = _snapshot(account_id, product, data, index)
        try:
            with storage_errors():
                async with session.begin_nested():
                    session.add(record)
        except IntegrityError as exc:
            last_error = exc
            logger.info(
                "record_duplicate_index_taken account=%s sku=%s production_date=%s index=%s",
                account_id,
                data.sku,
                data.production_date.isoformat(),
                index,
            )
            continue
        logger.info(
            "record_duplicate_confirmed account=%s sku=%s production_date=%s index=%s",
            account_id,
            data.sku,
            data.production_date.isoformat(),
            index,
        )
        return record
    raise StorageUnavailable(
        "Could not allocate a duplicate batch index",
        sku=data.sku,
        production_date=data.production_date.isoformat(),
    ) from last_error


async def create_record(
    session: AsyncSession, account_id: str, data: schemas.RecordCreate
) -> Record:
    """Snapshot the product into a new batch dated ``data.production_date``.

    Raises :class:`InvalidInput` for an unknown SKU and :class:`Conflict`
    when the batch already exists and ``confirm_duplicate`` is not set.
    """
    validate_sku(data.sku)
    product = await get_product(session, account_id, data.sku)
    if product is None:
        raise InvalidInput(f'SKU "{data.sku}" is not in the catalog', sku=data.sku)

    if data.confirm_duplicate:
        return await _insert_confirmed(session, account_id, product, data)

    record = _snapshot(account_id, product, data, 0)
    session.add(record)
    try:
        with storage_errors():
            await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        existing = await find_batches(session, account_id, data.sku, data.production_date)
        logger.info(
            "record_conflict account=%s sku=%s production_date=%s",
            account_id,
            data.sku,
            data.production_date.isoformat(),
        )
        raise Conflict(
            "A batch with the same SKU and production date already exists",
            entity=existing[0] if existing else None,
            sku=data.sku,
            production_date=data.production_date.isoformat(),
        ) from exc

    logger.info(
        "record_created account=%s sku=%s production_date=%s",
        account_id,
        data.sku,
        data.production_date.isoformat(),
    )
    return record


async def delete_record(
    session: AsyncSession, account_id: str, sku: str, production_date: date
) -> int:
    """Delete at most one batch, the most recently confirmed duplicate first."""

    batches = await find_batches(session, account_id, sku, production_date)
    if not batches:
        return 0
    with storage_errors():
        await session.delete(batches[-1])
        await session.flush()
    logger.info(
        "record_deleted account=%s sku=%s production_date=%s",
        account_id,
        sku,
        production_date.isoformat(),
    )
    return 1


__all__ = [
    "list_records",
    "list_records_by_sku",
    "find_batches",
    "create_record",
    "delete_record",
]
