"""Domain errors raised by the catalog, ledger and query layers.

Every error carries a ``code`` for programmatic handling, a human readable
``message`` and a ``data`` mapping with extra context. The HTTP layer turns
them into JSON responses; nothing below the router ever builds a response.

"Not found" is deliberately absent: lookups return ``None`` or an empty list.
"""
from __future__ import annotations

from typing import Any


class InventoryError(Exception):
    """Base class for errors surfaced to the caller."""

    code = "INVENTORY_ERROR"
    status_code = 500

    def __init__(self, message: str, **data: Any) -> None:
        super().__init__(message)
        self.message = message
        self.data = data

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": self.data}


class InvalidInput(InventoryError):
    """Caller-correctable input problem (bad SKU, shelf life, reminder)."""

    code = "INVALID_INPUT"
    status_code = 400


class Conflict(InventoryError):
    """Uniqueness violation; ``entity`` is the row already holding the key."""

    code = "CONFLICT"
    status_code = 409

    def __init__(self, message: str, entity: Any = None, **data: Any) -> None:
        super().__init__(message, **data)
        self.entity = entity


class StorageUnavailable(InventoryError):
    """The persistence collaborator failed; not retried here."""

    code = "STORAGE_UNAVAILABLE"
    status_code = 503


__all__ = ["InventoryError", "InvalidInput", "Conflict", "StorageUnavailable"]
