"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="Expiry Tracking Service",
        description="Human friendly name for the API.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./product_expiry.db",
        description="SQLAlchemy compatible database URL.",
    )
    echo_sql: bool = Field(
        default=False,
        description="Enable SQL echo logging for debugging.",
    )
    access_control_allow_origin: str = Field(
        default="*",
        description="Allowed CORS origins for the API, comma separated.",
    )
    default_timezone: str = Field(
        default="UTC",
        description="Timezone in which the calendar date 'today' is derived.",
    )
    secret_key: str = Field(
        default="product-expiration-secret-key-change-in-production",
        description="Key used to sign session tokens.",
    )
    session_salt: str = Field(default="expiry-session-token")
    session_max_age: int = Field(
        default=24 * 60 * 60,
        gt=0,
        description="Lifetime of an issued session token in seconds.",
    )
    expired_retention_days: int = Field(
        default=30,
        ge=0,
        description="Expired batches older than this many days are purged by maintenance.",
    )
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "standard"] = Field(default="json")

    @field_validator("database_url")
    @classmethod
    def _validate_sqlite_path(cls, value: str) -> str:
        if value.startswith("sqlite") and ":memory:" not in value and "///" not in value:
            raise ValueError(
                "SQLite database URLs should be in the form sqlite+aiosqlite:///path/to/db"
            )
        return value

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone {value!r}") from exc
        return value

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.access_control_allow_origin.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
