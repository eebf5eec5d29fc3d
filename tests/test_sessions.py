from __future__ import annotations

import time

from httpx import AsyncClient

from expiry_service.config import Settings
from expiry_service.sessions import SESSION_COOKIE, issue_session_token, load_session_token


def test_token_round_trip(settings: Settings) -> None:
    token = issue_session_token(settings, "account-a", lifetime=60, now=1_000)
    session = load_session_token(settings, token, now=1_030)
    assert session is not None
    assert session.account_id == "account-a"
    assert session.expires_at == 1_060


def test_expired_token_is_rejected(settings: Settings) -> None:
    token = issue_session_token(settings, "account-a", lifetime=60, now=1_000)
    assert load_session_token(settings, token, now=1_061) is None


def test_token_signed_with_other_key_is_rejected(settings: Settings) -> None:
    foreign = Settings(**{**settings.model_dump(), "secret_key": "another-secret"})
    token = issue_session_token(foreign, "account-a")
    assert load_session_token(settings, token) is None


async def test_session_endpoint_accepts_header_and_cookie(
    client: AsyncClient, settings: Settings
) -> None:
    token = issue_session_token(settings, "account-a")

    via_header = await client.get("/session", headers={"X-API-Token": token})
    assert via_header.status_code == 200
    assert via_header.json()["account_id"] == "account-a"

    client.cookies.set(SESSION_COOKIE, token)
    via_cookie = await client.get("/session")
    assert via_cookie.status_code == 200
    assert via_cookie.json()["account_id"] == "account-a"


async def test_expired_session_gets_401(client: AsyncClient, settings: Settings) -> None:
    token = issue_session_token(settings, "account-a", lifetime=1, now=time.time() - 10)
    response = await client.get("/records", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
