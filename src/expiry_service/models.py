"""Database models for the product catalog and the batch ledger."""
from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import CheckConstraint, Date, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

SKU_LENGTH = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Mixin providing created/updated timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class Product(Base, TimestampMixin):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("account_id", "sku", name="uq_products_account_sku"),
        CheckConstraint("shelf_life_days > 0", name="ck_products_shelf_life_positive"),
        CheckConstraint("reminder_days >= 0", name="ck_products_reminder_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    sku: Mapped[str] = mapped_column(String(SKU_LENGTH), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    shelf_life_days: Mapped[int] = mapped_column(Integer, nullable=False)
    reminder_days: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)


class Record(Base):
    """A dated physical batch.

    Name, shelf life, reminder window and location are copied from the
    product when the batch is logged and never follow later catalog edits.
    ``duplicate_index`` is 0 for the first batch of a given
    (account, sku, production date) and counts up for confirmed duplicates.
    """

    __tablename__ = "product_records"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "sku",
            "production_date",
            "duplicate_index",
            name="uq_records_account_sku_date_index",
        ),
        CheckConstraint("shelf_life_days > 0", name="ck_records_shelf_life_positive"),
        Index("ix_records_account_sku", "account_id", "sku"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    account_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    sku: Mapped[str] = mapped_column(String(SKU_LENGTH), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    production_date: Mapped[date] = mapped_column(Date, nullable=False)
    shelf_life_days: Mapped[int] = mapped_column(Integer, nullable=False)
    reminder_days: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    duplicate_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )


__all__ = ["Product", "Record", "SKU_LENGTH"]
