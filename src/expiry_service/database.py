"""Database initialization helpers."""
from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings
from .exceptions import StorageUnavailable


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create a configured SQLAlchemy async engine."""

    settings = get_settings()
    return create_async_engine(database_url or settings.database_url, echo=settings.echo_sql)


engine = create_engine()
SessionFactory = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield an :class:`AsyncSession` for FastAPI dependencies."""

    async with SessionFactory() as session:
        yield session


@contextmanager
def storage_errors() -> Iterator[None]:
    """Translate driver failures into :class:`StorageUnavailable`.

    Integrity errors pass through untouched; callers turn them into conflicts.
    """
    try:
        yield
    except IntegrityError:
        raise
    except DBAPIError as exc:
        raise StorageUnavailable("Storage backend unavailable") from exc


__all__ = [
    "Base",
    "create_engine",
    "engine",
    "SessionFactory",
    "get_session",
    "storage_errors",
]
