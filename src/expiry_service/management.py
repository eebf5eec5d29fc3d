"""Utility helpers for administrative tasks.

Run as ``python -m expiry_service.management <command>``; the purge command is
meant to be scheduled (cron or similar), it never runs on its own.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from . import maintenance
from .config import get_settings
from .database import Base, engine
from .dates import today_in
from .logging_config import configure_logging
from .sessions import issue_session_token

logger = logging.getLogger(__name__)


async def init_database(db_engine: AsyncEngine | None = None) -> None:
    """Create database tables for the application."""

    engine_to_use = db_engine or engine
    async with engine_to_use.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def purge_expired(account_id: str, db_engine: AsyncEngine | None = None) -> int:
    settings = get_settings()
    factory = async_sessionmaker(bind=db_engine or engine, expire_on_commit=False)
    async with factory() as session:
        deleted = await maintenance.purge_expired(
            session,
            account_id,
            today_in(settings.default_timezone),
            settings.expired_retention_days,
        )
        await session.commit()
    return deleted


async def seed_sample_catalog(account_id: str, db_engine: AsyncEngine | None = None) -> list[str]:
    factory = async_sessionmaker(bind=db_engine or engine, expire_on_commit=False)
    async with factory() as session:
        added, _ = await maintenance.seed_sample_catalog(session, account_id)
        await session.commit()
    return added


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expiry_service.management")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables.")

    purge = commands.add_parser("purge-expired", help="Delete long expired batches of an account.")
    purge.add_argument("--account", required=True)

    seed = commands.add_parser("seed", help="Add the sample catalog to an account.")
    seed.add_argument("--account", required=True)

    token = commands.add_parser("issue-token", help="Print a session token for an account.")
    token.add_argument("--account", required=True)
    token.add_argument("--lifetime", type=int, default=None, help="Lifetime in seconds.")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(log_level=settings.log_level, log_format=settings.log_format)

    if args.command == "init-db":
        asyncio.run(init_database())
        logger.info("database_initialized url=%s", settings.database_url)
    elif args.command == "purge-expired":
        deleted = asyncio.run(purge_expired(args.account))
        print(f"Purged {deleted} expired record(s) for account {args.account}")
    elif args.command == "seed":
        added = asyncio.run(seed_sample_catalog(args.account))
        print(f"Added {len(added)} sample product(s) for account {args.account}")
    elif args.command == "issue-token":
        print(issue_session_token(settings, args.account, lifetime=args.lifetime))


if __name__ == "__main__":
    main()
