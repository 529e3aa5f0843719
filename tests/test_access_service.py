"""
tests.test_access_service

Proxy access bookkeeping when the principal lookup or registration meets a
failing or concurrently written store.
"""

from __future__ import annotations

import pytest

from proxygate.auth.service import AuthorizationService
from proxygate.auth.tokens import TokenManager
from proxygate.db.models import Role
from proxygate.db.store import CredentialStore
from proxygate.errors import RateLimited, StoreError
from proxygate.ratelimit.limiter import RateLimiter, RoleLimits
from proxygate.services.access_service import AccessService
from proxygate.services.context import AccessContext
from proxygate.settings import Settings


class FlakyLookupStore:
    """Delegates to a real store, but the first `get_user` call fails."""

    def __init__(self, inner: CredentialStore) -> None:
        self._inner = inner
        self.failures = 1

    async def get_user(self, principal_id: int):
        if self.failures:
            self.failures -= 1
            raise StoreError("connection reset")
        return await self._inner.get_user(principal_id)

    def __getattr__(self, name: str):
        return getattr(self._inner, name)


def _service(store, limiter_store: CredentialStore, *, policy: str = "open") -> AccessService:
    # Free quota of zero: any call limited at the default role is denied.
    limiter = RateLimiter(
        limiter_store, RoleLimits(free=0, premium=5, admin=5), failure_policy=policy
    )
    ctx = AccessContext(
        settings=Settings(env="test", proxy_host="proxy.example", proxy_port="1080"),
        authz=AuthorizationService(),
        store=store,
        tokens=TokenManager(limiter_store),
        limiter=limiter,
    )
    return AccessService(ctx)


@pytest.mark.asyncio
async def test_lookup_failure_keeps_persisted_role(store: CredentialStore) -> None:
    await store.upsert_user(principal_id=7, role=Role.premium, is_authenticated=True)
    service = _service(FlakyLookupStore(store), store)

    offer = await service.request_proxy(7)

    assert offer.host == "proxy.example"
    assert (await store.get_user(7)).role == Role.premium


@pytest.mark.asyncio
async def test_lookup_failure_honours_closed_policy(store: CredentialStore) -> None:
    await store.upsert_user(principal_id=7, role=Role.premium, is_authenticated=True)
    service = _service(FlakyLookupStore(store), store, policy="closed")

    with pytest.raises(RateLimited):
        await service.request_proxy(7)
    assert (await store.get_user(7)).role == Role.premium


@pytest.mark.asyncio
async def test_known_principal_limited_by_persisted_role(store: CredentialStore) -> None:
    await store.upsert_user(principal_id=7, role=Role.premium, is_authenticated=True)
    service = _service(store, store)

    await service.request_proxy(7)

    assert (await store.get_user(7)).role == Role.premium


@pytest.mark.asyncio
async def test_unknown_principal_registered_with_default_role(store: CredentialStore) -> None:
    limiter = RateLimiter(store, RoleLimits(free=5, premium=5, admin=5))
    ctx = AccessContext(
        settings=Settings(env="test"),
        authz=AuthorizationService(),
        store=store,
        tokens=TokenManager(store),
        limiter=limiter,
    )

    await AccessService(ctx).request_proxy(8)

    user = await store.get_user(8)
    assert user.role == Role.free
    assert user.is_authenticated is True


@pytest.mark.asyncio
async def test_registration_never_overwrites_an_existing_role(store: CredentialStore) -> None:
    assert await store.register_user(principal_id=9, role=Role.free, is_authenticated=True)
    await store.upsert_user(principal_id=9, role=Role.admin, is_authenticated=True)

    assert not await store.register_user(principal_id=9, role=Role.free, is_authenticated=True)
    assert (await store.get_user(9)).role == Role.admin
