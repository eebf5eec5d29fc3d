"""Product catalog operations, each scoped to a single account."""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from . import schemas
from .database import storage_errors
from .exceptions import Conflict, InvalidInput
from .models import SKU_LENGTH, Product

logger = logging.getLogger(__name__)


def validate_sku(sku: str) -> str:
    if not isinstance(sku, str) or len(sku) != SKU_LENGTH or any(ch.isspace() for ch in sku):
        raise InvalidInput(f"SKU must be a {SKU_LENGTH} character code", sku=sku)
    return sku


def validate_shelf_life(shelf_life_days: int, reminder_days: int) -> None:
    if shelf_life_days <= 0:
        raise InvalidInput(
            "Shelf life must be a positive number of days", shelf_life_days=shelf_life_days
        )
    if reminder_days < 0:
        raise InvalidInput("Reminder days cannot be negative", reminder_days=reminder_days)
    if reminder_days > shelf_life_days:
        raise InvalidInput(
            "Reminder days cannot exceed the shelf life",
            shelf_life_days=shelf_life_days,
            reminder_days=reminder_days,
        )


async def list_products(session: AsyncSession, account_id: str) -> Sequence[Product]:
    stmt = select(Product).where(Product.account_id == account_id).order_by(Product.sku)
    with storage_errors():
        result = await session.execute(stmt)
    return result.scalars().all()


async def get_product(session: AsyncSession, account_id: str, sku: str) -> Product | None:
    stmt = select(Product).where(Product.account_id == account_id, Product.sku == sku)
    with storage_errors():
        result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_product(
    session: AsyncSession, account_id: str, data: schemas.ProductCreate
) -> Product:
    validate_sku(data.sku)
    validate_shelf_life(data.shelf_life_days, data.reminder_days)

    product = Product(account_id=account_id, **data.model_dump())
    session.add(product)
    try:
        with storage_errors():
            await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        existing = await get_product(session, account_id, data.sku)
        logger.info("product_conflict account=%s sku=%s", account_id, data.sku)
        raise Conflict(f'SKU "{data.sku}" already exists', entity=existing, sku=data.sku) from exc
    logger.info("product_created account=%s sku=%s", account_id, data.sku)
    return product


async def update_product(
    session: AsyncSession, account_id: str, sku: str, data: schemas.ProductUpdate
) -> Product | None:
    """Apply ``data`` to the product; returns ``None`` when the SKU is unknown."""

    product = await get_product(session, account_id, sku)
    if product is None:
        return None
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    validate_shelf_life(
        changes.get("shelf_life_days", product.shelf_life_days),
        changes.get("reminder_days", product.reminder_days),
    )
    for field, value in changes.items():
        setattr(product, field, value)
    with storage_errors():
        await session.flush()
    logger.info("product_updated account=%s sku=%s fields=%s", account_id, sku, sorted(changes))
    return product


async def delete_product(session: AsyncSession, account_id: str, sku: str) -> int:
    """Remove the product; batches already logged from it are left alone."""

    stmt = delete(Product).where(Product.account_id == account_id, Product.sku == sku)
    with storage_errors():
        result = await session.execute(stmt)
    if result.rowcount:
        logger.info("product_deleted account=%s sku=%s", account_id, sku)
    return result.rowcount or 0


__all__ = [
    "validate_sku",
    "validate_shelf_life",
    "list_products",
    "get_product",
    "create_product",
    "update_product",
    "delete_product",
]
