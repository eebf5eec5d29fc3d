"""FastAPI router configuration."""
from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Sequence

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from . import catalog, ledger, maintenance, queries, schemas
from .config import Settings, get_settings
from .database import get_session, storage_errors
from .dates import parse_calendar_date, today_in
from .exceptions import Conflict, InventoryError, StorageUnavailable
from .logging_config import configure_logging
from .models import Product, Record
from .sessions import AccountSession, extract_token, load_session_token

logger = logging.getLogger(__name__)

router = APIRouter()


def provide_settings() -> Settings:
    """Dependency returning the active :class:`Settings` instance."""

    return get_settings()


def provide_today(settings: Settings = Depends(provide_settings)) -> date:
    """Calendar date of "today" in the configured timezone."""

    return today_in(settings.default_timezone)


def current_session(
    request: Request, settings: Settings = Depends(provide_settings)
) -> AccountSession:
    token = extract_token(request)
    account_session = load_session_token(settings, token) if token else None
    if account_session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.account_id = account_session.account_id
    return account_session


def current_account(account_session: AccountSession = Depends(current_session)) -> str:
    return account_session.account_id


async def _commit(session: AsyncSession) -> None:
    with storage_errors():
        await session.commit()


@router.get("/health", response_model=schemas.HealthStatus, tags=["system"])
async def health_check(settings: Settings = Depends(provide_settings)) -> schemas.HealthStatus:
    return schemas.HealthStatus(environment=settings.environment)


@router.get("/session", response_model=schemas.SessionInfo, tags=["system"])
async def session_info(
    account_session: AccountSession = Depends(current_session),
) -> schemas.SessionInfo:
    return schemas.SessionInfo(
        account_id=account_session.account_id,
        issued_at=account_session.issued_at_datetime,
        expires_at=account_session.expires_at_datetime,
    )


@router.get("/products", response_model=list[schemas.ProductOut], tags=["products"])
async def list_products(
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> Sequence[schemas.ProductOut]:
    products = await queries.catalog_listing(session, account_id)
    return [schemas.ProductOut.model_validate(product) for product in products]


@router.get("/products/{sku}", response_model=schemas.ProductOut | None, tags=["products"])
async def get_product(
    sku: str,
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> schemas.ProductOut | None:
    product = await catalog.get_product(session, account_id, sku)
    if product is None:
        return None
    return schemas.ProductOut.model_validate(product)


@router.post("/products", response_model=schemas.ProductOut, tags=["products"])
async def create_product(
    payload: schemas.ProductCreate,
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> schemas.ProductOut:
    product = await catalog.create_product(session, account_id, payload)
    await _commit(session)
    return schemas.ProductOut.model_validate(product)


@router.put("/products/{sku}", response_model=schemas.ProductOut | None, tags=["products"])
async def update_product(
    sku: str,
    payload: schemas.ProductUpdate,
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> schemas.ProductOut | None:
    product = await catalog.update_product(session, account_id, sku, payload)
    if product is None:
        return None
    await _commit(session)
    await session.refresh(product)
    return schemas.ProductOut.model_validate(product)


@router.delete("/products/{sku}", response_model=schemas.DeleteResult, tags=["products"])
async def delete_product(
    sku: str,
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> schemas.DeleteResult:
    deleted = await catalog.delete_product(session, account_id, sku)
    await _commit(session)
    return schemas.DeleteResult(deleted=deleted)


@router.get("/records", response_model=list[schemas.AssessedRecordOut], tags=["records"])
async def list_records(
    sku: str | None = None,
    account_id: str = Depends(current_account),
    today: date = Depends(provide_today),
    session: AsyncSession = Depends(get_session),
) -> Sequence[schemas.AssessedRecordOut]:
    ranked = await queries.all_records(session, account_id, today, sku=sku)
    return [schemas.AssessedRecordOut.from_assessed(item) for item in ranked]


@router.get(
    "/records/expiring", response_model=list[schemas.AssessedRecordOut], tags=["records"]
)
async def list_expiring_records(
    account_id: str = Depends(current_account),
    today: date = Depends(provide_today),
    session: AsyncSession = Depends(get_session),
) -> Sequence[schemas.AssessedRecordOut]:
    ranked = await queries.expiring(session, account_id, today)
    return [schemas.AssessedRecordOut.from_assessed(item) for item in ranked]


@router.get(
    "/records/by-sku/{sku}", response_model=list[schemas.AssessedRecordOut], tags=["records"]
)
async def list_records_by_sku(
    sku: str,
    account_id: str = Depends(current_account),
    today: date = Depends(provide_today),
    session: AsyncSession = Depends(get_session),
) -> Sequence[schemas.AssessedRecordOut]:
    ranked = await queries.all_records(session, account_id, today, sku=sku)
    return [schemas.AssessedRecordOut.from_assessed(item) for item in ranked]


@router.get(
    "/records/preview", response_model=schemas.ExpiryPreview | None, tags=["records"]
)
async def preview_record(
    sku: str,
    production_date: str,
    account_id: str = Depends(current_account),
    today: date = Depends(provide_today),
    session: AsyncSession = Depends(get_session),
) -> schemas.ExpiryPreview | None:
    result = await queries.preview(
        session, account_id, sku, parse_calendar_date(production_date), today
    )
    if result is None:
        return None
    return schemas.ExpiryPreview(
        sku=result.product.sku,
        name=result.product.name,
        production_date=result.production_date,
        expiry_date=result.expiry_date,
        reminder_date=result.reminder_date,
        remaining_days=result.remaining_days,
        status=result.status,
    )


@router.post(
    "/records",
    response_model=schemas.AssessedRecordOut,
    responses={status.HTTP_409_CONFLICT: {"model": schemas.RecordConflict}},
    tags=["records"],
)
async def create_record(
    payload: schemas.RecordCreate,
    account_id: str = Depends(current_account),
    today: date = Depends(provide_today),
    session: AsyncSession = Depends(get_session),
) -> schemas.AssessedRecordOut:
    record = await ledger.create_record(session, account_id, payload)
    await _commit(session)
    return schemas.AssessedRecordOut.from_assessed(queries.rank([record], today)[0])


@router.delete(
    "/records/{sku}/{production_date}", response_model=schemas.DeleteResult, tags=["records"]
)
async def delete_record(
    sku: str,
    production_date: str,
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> schemas.DeleteResult:
    deleted = await ledger.delete_record(
        session, account_id, sku, parse_calendar_date(production_date)
    )
    await _commit(session)
    return schemas.DeleteResult(deleted=deleted)


@router.post(
    "/maintenance/purge-expired", response_model=schemas.PurgeResult, tags=["maintenance"]
)
async def purge_expired_records(
    account_id: str = Depends(current_account),
    today: date = Depends(provide_today),
    settings: Settings = Depends(provide_settings),
    session: AsyncSession = Depends(get_session),
) -> schemas.PurgeResult:
    retention = settings.expired_retention_days
    deleted = await maintenance.purge_expired(session, account_id, today, retention)
    await _commit(session)
    return schemas.PurgeResult(deleted=deleted, cutoff=maintenance.purge_cutoff(today, retention))


@router.post("/maintenance/reset", response_model=schemas.ResetResult, tags=["maintenance"])
async def reset_account_data(
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> schemas.ResetResult:
    products_deleted, records_deleted = await maintenance.reset_account(session, account_id)
    await _commit(session)
    return schemas.ResetResult(products_deleted=products_deleted, records_deleted=records_deleted)


@router.post(
    "/maintenance/sample-catalog", response_model=schemas.SeedResult, tags=["maintenance"]
)
async def seed_sample_catalog(
    account_id: str = Depends(current_account),
    session: AsyncSession = Depends(get_session),
) -> schemas.SeedResult:
    added, skipped = await maintenance.seed_sample_catalog(session, account_id)
    await _commit(session)
    return schemas.SeedResult(added=added, skipped=skipped)


def _serialize_entity(entity: Any) -> Any:
    if isinstance(entity, Record):
        return schemas.RecordOut.model_validate(entity).model_dump(mode="json")
    if isinstance(entity, Product):
        return schemas.ProductOut.model_validate(entity).model_dump(mode="json")
    return None


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    content: dict[str, Any] = {"detail": exc.message, **exc.as_dict()}
    if isinstance(exc, StorageUnavailable):
        logger.error("storage_unavailable path=%s", request.url.path, exc_info=exc.__cause__)
    elif isinstance(exc, Conflict):
        content["conflict"] = _serialize_entity(exc.entity)
    return JSONResponse(status_code=exc.status_code, content=content)


async def request_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "request_completed method=%s path=%s status=%s duration_ms=%.2f account=%s",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        getattr(request.state, "account_id", None),
    )
    return response


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(log_level=settings.log_level, log_format=settings.log_format)
        logger.info("starting app=%s environment=%s", settings.app_name, settings.environment)
        yield

    return lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=_lifespan(settings))
    app.dependency_overrides[provide_settings] = lambda: settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_logging_middleware)
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.include_router(router)
    return app


app = create_app()


__all__ = ["app", "create_app", "provide_settings", "provide_today", "current_account"]
