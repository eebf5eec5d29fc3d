"""Pydantic schemas used by the API."""
from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .dates import parse_calendar_date
from .exceptions import InvalidInput
from .status import ExpiryStatus

if TYPE_CHECKING:
    from .queries import AssessedRecord


def _calendar_date(value: Any) -> date:
    if not isinstance(value, (str, date)):
        raise ValueError("Expected a calendar date in YYYY-MM-DD form")
    try:
        return parse_calendar_date(value)
    except InvalidInput as exc:
        raise ValueError(exc.message) from exc


class ProductBase(BaseModel):
    sku: str = Field(..., description="Five character stock keeping unit code.")
    name: str
    shelf_life_days: int = Field(..., description="Days from production until expiry.")
    reminder_days: int = Field(..., description="Days before expiry at which a batch turns to warning.")
    location: str = Field(..., description="Default storage location for new batches.")


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: str | None = None
    shelf_life_days: int | None = None
    reminder_days: int | None = None
    location: str | None = None


class ProductOut(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


class RecordCreate(BaseModel):
    sku: str
    production_date: date
    location: str | None = Field(
        default=None, description="Overrides the product's default location."
    )
    confirm_duplicate: bool = Field(
        default=False,
        description="Log the batch even if the same SKU and production date already exist.",
    )

    parse_production_date = field_validator("production_date", mode="before")(_calendar_date)


class RecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    name: str
    production_date: date
    shelf_life_days: int
    reminder_days: int
    location: str
    duplicate_index: int
    created_at: datetime


class AssessedRecordOut(RecordOut):
    expiry_date: date
    reminder_date: date
    remaining_days: int
    status: ExpiryStatus

    @classmethod
    def from_assessed(cls, item: AssessedRecord) -> AssessedRecordOut:
        base = RecordOut.model_validate(item.record)
        return cls(
            **base.model_dump(),
            expiry_date=item.expiry_date,
            reminder_date=item.reminder_date,
            remaining_days=item.remaining_days,
            status=item.status,
        )


class ExpiryPreview(BaseModel):
    sku: str
    name: str
    production_date: date
    expiry_date: date
    reminder_date: date
    remaining_days: int
    status: ExpiryStatus


class RecordConflict(BaseModel):
    detail: str
    code: str
    message: str
    data: dict[str, Any]
    conflict: RecordOut | ProductOut | None


class DeleteResult(BaseModel):
    deleted: int


class PurgeResult(BaseModel):
    deleted: int
    cutoff: date


class ResetResult(BaseModel):
    products_deleted: int
    records_deleted: int


class SeedResult(BaseModel):
    added: list[str]
    skipped: list[str]


class SessionInfo(BaseModel):
    account_id: str
    issued_at: datetime
    expires_at: datetime


class HealthStatus(BaseModel):
    status: Literal["ok"] = "ok"
    environment: str


__all__ = [
    "ProductCreate",
    "ProductUpdate",
    "ProductOut",
    "RecordCreate",
    "RecordOut",
    "AssessedRecordOut",
    "ExpiryPreview",
    "RecordConflict",
    "DeleteResult",
    "PurgeResult",
    "ResetResult",
    "SeedResult",
    "SessionInfo",
    "HealthStatus",
]
