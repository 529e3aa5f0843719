"""
tests.test_api

End-to-end tests of the command API over an in-process ASGI transport.

Responsibilities:
- Ensure the app boots, builds its access context and serves the probes.
- Exercise the start/auth/issue/proxy/status/disable flows.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import pytest

from proxygate.api.app import ACCESS_DENIED_DETAIL, create_app
from proxygate.settings import Settings

ADMIN = 1
STATIC_TOKEN = "static-secret"


def _settings(tmp_path: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {
        "env": "test",
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        "allowed_user_ids": [ADMIN],
        "auth_tokens": [STATIC_TOKEN],
        "throttle_seconds": 0,
        "rate_limit_free_per_min": 2,
        "proxy_host": "proxy.example.net",
        "proxy_port": "1080",
        "proxy_user": "alice",
        "proxy_pass": "hunter2",
    }
    values.update(overrides)
    return Settings(**values)


@asynccontextmanager
async def _client(settings: Settings) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(settings=settings)
    # httpx's ASGITransport does not manage lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


def _as(principal: int) -> dict[str, str]:
    return {"X-Principal-Id": str(principal)}


@pytest.fixture
def settings_for(tmp_path: Path) -> Callable[..., Settings]:
    return lambda **overrides: _settings(tmp_path, **overrides)


@pytest.mark.asyncio
async def test_health_endpoints(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.get("/healthz")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert "x-request-id" in r.headers

        r = await client.get("/healthz", headers={"x-request-id": "req-1"})
        assert r.headers["x-request-id"] == "req-1"

        r = await client.get("/readyz")
        assert r.status_code == 200
        assert r.json() == {"status": "ready", "store": "ok"}


@pytest.mark.asyncio
async def test_missing_principal_header_rejected(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.post("/v1/proxy")
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_denial_and_bad_token_are_indistinguishable(settings_for) -> None:
    async with _client(settings_for()) as client:
        denied = await client.post("/v1/proxy", headers=_as(50))
        bad_auth = await client.post("/v1/auth", json={"token": "wrong"}, headers=_as(50))
        bad_start = await client.post("/v1/start", json={"payload": "wrong"}, headers=_as(50))

        for r in (denied, bad_auth, bad_start):
            assert r.status_code == 403
            assert r.json() == {"detail": ACCESS_DENIED_DETAIL}


@pytest.mark.asyncio
async def test_start_with_deep_link_token(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.post("/v1/start", json={"payload": STATIC_TOKEN}, headers=_as(60))
        assert r.status_code == 200
        assert r.json()["authenticated_now"] is True

        r = await client.post("/v1/start", json={}, headers=_as(60))
        assert r.json() == {"authorized": True, "authenticated_now": False}


@pytest.mark.asyncio
async def test_issue_and_redeem_token(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.post("/v1/tokens", json={"role": "premium"}, headers=_as(ADMIN))
        assert r.status_code == 201
        body = r.json()
        assert body["role"] == "premium"
        assert body["expires_at"] is None
        token = body["token"]
        assert len(token) == 24

        r = await client.post("/v1/auth", json={"token": token}, headers=_as(42))
        assert r.status_code == 200
        assert r.json() == {"authenticated": True, "role": "premium"}

        r = await client.get("/v1/status", headers=_as(42))
        assert r.json() == {"principal_id": 42, "role": "premium", "is_authenticated": True}

        r = await client.post("/v1/auth", json={"token": token}, headers=_as(99))
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_issue_requires_admin(settings_for) -> None:
    async with _client(settings_for()) as client:
        # Authenticated, but neither allow-listed nor a persisted admin.
        await client.post("/v1/auth", json={"token": STATIC_TOKEN}, headers=_as(70))
        r = await client.post("/v1/tokens", json={"role": "admin"}, headers=_as(70))
        assert r.status_code == 403
        assert r.json() == {"detail": ACCESS_DENIED_DETAIL}


@pytest.mark.asyncio
async def test_issued_admin_can_issue(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.post("/v1/tokens", json={"role": "admin"}, headers=_as(ADMIN))
        await client.post("/v1/auth", json={"token": r.json()["token"]}, headers=_as(80))

        r = await client.post("/v1/tokens", json={"role": "free", "ttl": "30m"}, headers=_as(80))
        assert r.status_code == 201
        assert r.json()["expires_at"] is not None


@pytest.mark.asyncio
async def test_expired_token_rejected(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.post("/v1/tokens", json={"role": "free", "ttl": "-1s"}, headers=_as(ADMIN))
        r = await client.post("/v1/auth", json={"token": r.json()["token"]}, headers=_as(81))
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_issue_rejects_bad_input(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.post("/v1/tokens", json={"role": "root"}, headers=_as(ADMIN))
        assert r.status_code == 422
        r = await client.post("/v1/tokens", json={"role": "free", "ttl": "soon"}, headers=_as(ADMIN))
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_proxy_is_rate_limited(settings_for) -> None:
    async with _client(settings_for()) as client:
        first = await client.post("/v1/proxy", headers=_as(ADMIN))
        assert first.status_code == 200
        offer = first.json()
        assert offer["link"].startswith("tg://socks?server=proxy.example.net&port=1080")
        assert "pass=hunter2" in offer["link"]
        assert offer["has_password"] is True
        assert "hunter2" not in (offer["host"], offer["user"])

        # First access registered the principal with the default role.
        r = await client.get("/v1/status", headers=_as(ADMIN))
        assert r.json() == {"principal_id": ADMIN, "role": "free", "is_authenticated": True}

        assert (await client.post("/v1/proxy", headers=_as(ADMIN))).status_code == 200
        limited = await client.post("/v1/proxy", headers=_as(ADMIN))
        assert limited.status_code == 429


@pytest.mark.asyncio
async def test_status_of_unknown_principal(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.get("/v1/status", headers=_as(12345))
        assert r.json() == {"principal_id": 12345, "role": "free", "is_authenticated": False}


@pytest.mark.asyncio
async def test_disable_instructions(settings_for) -> None:
    async with _client(settings_for()) as client:
        r = await client.get("/v1/disable", headers=_as(ADMIN))
        assert r.status_code == 200
        assert r.json()["settings_link"] == "tg://settings"

        r = await client.get("/v1/disable", headers=_as(2))
        assert r.status_code == 403


@pytest.mark.asyncio
async def test_runs_without_store(settings_for) -> None:
    async with _client(settings_for(database_url="", allowed_user_ids=[])) as client:
        r = await client.get("/readyz")
        assert r.json() == {"status": "ready", "store": "disabled"}

        r = await client.post("/v1/auth", json={"token": STATIC_TOKEN}, headers=_as(5))
        assert r.status_code == 200

        # No rate limiting without a store.
        for _ in range(4):
            assert (await client.post("/v1/proxy", headers=_as(5))).status_code == 200

        r = await client.get("/v1/status", headers=_as(5))
        assert r.json() == {"principal_id": 5, "role": None, "is_authenticated": False}

        r = await client.post("/v1/tokens", json={"role": "free"}, headers=_as(5))
        assert r.status_code == 503
