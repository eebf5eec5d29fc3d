"""Explicitly scheduled ledger and catalog housekeeping."""
from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from . import catalog, ledger, schemas
from .database import storage_errors
from .dates import expiry_date
from .models import Product, Record

logger = logging.getLogger(__name__)

SAMPLE_CATALOG: tuple[schemas.ProductCreate, ...] = (
    schemas.ProductCreate(
        sku="13607", name="Sample item", shelf_life_days=180, reminder_days=7,
        location="Aisle A, row 1, shelf 1",
    ),
    schemas.ProductCreate(
        sku="10001", name="Whole milk", shelf_life_days=180, reminder_days=7,
        location="Chiller, row 1",
    ),
    schemas.ProductCreate(
        sku="10002", name="Yoghurt", shelf_life_days=21, reminder_days=3,
        location="Chiller, row 2",
    ),
    schemas.ProductCreate(
        sku="20001", name="Biscuits", shelf_life_days=365, reminder_days=30,
        location="Dry goods, row 2",
    ),
    schemas.ProductCreate(
        sku="30001", name="Mineral water", shelf_life_days=540, reminder_days=60,
        location="Beverages, row 1",
    ),
)


def purge_cutoff(today: date, retention_days: int) -> date:
    return today - timedelta(days=retention_days)


async def purge_expired(
    session: AsyncSession, account_id: str, today: date, retention_days: int
) -> int:
    """Delete batches whose expiry date lies more than ``retention_days`` before ``today``."""

    cutoff = purge_cutoff(today, retention_days)
    stale = [
        record.id
        for record in await ledger.list_records(session, account_id)
        if expiry_date(record.production_date, record.shelf_life_days) < cutoff
    ]
    if not stale:
        return 0
    stmt = delete(Record).where(Record.account_id == account_id, Record.id.in_(stale))
    with storage_errors():
        result = await session.execute(stmt)
    logger.info(
        "records_purged account=%s cutoff=%s count=%s", account_id, cutoff.isoformat(), result.rowcount
    )
    return result.rowcount or 0


async def reset_account(session: AsyncSession, account_id: str) -> tuple[int, int]:
    """Remove every product and batch owned by ``account_id``."""

    with storage_errors():
        products = await session.execute(delete(Product).where(Product.account_id == account_id))
        records = await session.execute(delete(Record).where(Record.account_id == account_id))
    logger.info(
        "account_reset account=%s products=%s records=%s",
        account_id,
        products.rowcount,
        records.rowcount,
    )
    return products.rowcount or 0, records.rowcount or 0


async def seed_sample_catalog(session: AsyncSession, account_id: str) -> tuple[list[str], list[str]]:
    """Add the sample products, leaving SKUs the account already has untouched."""

    added: list[str] = []
    skipped: list[str] = []
    for product in SAMPLE_CATALOG:
        if await catalog.get_product(session, account_id, product.sku) is not None:
            skipped.append(product.sku)
            continue
        await catalog.create_product(session, account_id, product)
        added.append(product.sku)
    return added, skipped


__all__ = ["SAMPLE_CATALOG", "purge_cutoff", "purge_expired", "reset_account", "seed_sample_catalog"]
