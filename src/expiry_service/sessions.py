"""Signed session tokens identifying the calling account.

Credentials are checked elsewhere; whoever authenticates the user calls
:func:`issue_session_token` and hands the token to the client. Requests carry
it back as a bearer token, an ``X-API-Token`` header or the ``session``
cookie.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from itsdangerous import BadData, URLSafeSerializer

from .config import Settings

SESSION_COOKIE = "session"


@dataclass(frozen=True)
class AccountSession:
    account_id: str
    issued_at: int
    expires_at: int

    @property
    def issued_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.issued_at, tz=timezone.utc)

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)


def _serializer(settings: Settings) -> URLSafeSerializer:
    return URLSafeSerializer(settings.secret_key, salt=settings.session_salt)


def issue_session_token(
    settings: Settings,
    account_id: str,
    lifetime: int | None = None,
    now: float | None = None,
) -> str:
    issued_at = int(now if now is not None else time.time())
    expires_at = issued_at + (lifetime or settings.session_max_age)
    payload = {"a": str(account_id), "iat": issued_at, "exp": expires_at}
    return _serializer(settings).dumps(payload)


def load_session_token(
    settings: Settings, token: str, now: float | None = None
) -> AccountSession | None:
    try:
        payload: Any = _serializer(settings).loads(token)
    except BadData:
        return None
    if not isinstance(payload, dict):
        return None
    account_id = payload.get("a")
    if not account_id:
        return None
    try:
        issued_at = int(payload.get("iat", 0))
        expires_at = int(payload["exp"])
    except (KeyError, TypeError, ValueError):
        return None
    current = now if now is not None else time.time()
    if current > expires_at:
        return None
    return AccountSession(account_id=str(account_id), issued_at=issued_at, expires_at=expires_at)


def extract_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if isinstance(auth_header, str):
        scheme, _, token_value = auth_header.partition(" ")
        if scheme.lower() == "bearer" and token_value.strip():
            return token_value.strip()
    header_token = request.headers.get("X-API-Token")
    if isinstance(header_token, str) and header_token.strip():
        return header_token.strip()
    cookie_token = request.cookies.get(SESSION_COOKIE)
    if isinstance(cookie_token, str) and cookie_token.strip():
        return cookie_token.strip()
    return None


__all__ = [
    "SESSION_COOKIE",
    "AccountSession",
    "issue_session_token",
    "load_session_token",
    "extract_token",
]
