"""
proxygate.services.context

Process-wide access context (composition of the engine).

Responsibilities:
- Build the authorization service, credential store, token manager and rate
  limiter once at startup from settings.
- Own the DB engine lifetime (create + dispose).
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine

from proxygate.auth.service import AuthorizationService
from proxygate.auth.tokens import TokenManager
from proxygate.db.init_db import init_db
from proxygate.db.session import create_engine, create_sessionmaker
from proxygate.db.store import CredentialStore
from proxygate.observability.logging import get_logger
from proxygate.ratelimit.limiter import RateLimiter
from proxygate.settings import Settings

log = get_logger(__name__)


@dataclass(slots=True)
class AccessContext:
    settings: Settings
    authz: AuthorizationService
    engine: AsyncEngine | None = None
    store: CredentialStore | None = None
    tokens: TokenManager | None = None
    limiter: RateLimiter | None = None

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None


async def build_context(settings: Settings) -> AccessContext:
    authz = AuthorizationService.from_settings(settings)
    ctx = AccessContext(settings=settings, authz=authz)

    if not settings.database_url:
        # Static credentials only: no issued tokens, no rate limiting.
        log.warning("credential_store_disabled")
        return ctx

    engine = create_engine(settings)
    if settings.env in ("dev", "test"):
        # Dev/test convenience: create tables automatically. Prod uses Alembic migrations.
        await init_db(engine)

    store = CredentialStore(create_sessionmaker(engine), timeout=settings.store_timeout_seconds)
    tokens = TokenManager(store)
    authz.attach_store(store, tokens)

    ctx.engine = engine
    ctx.store = store
    ctx.tokens = tokens
    ctx.limiter = RateLimiter.from_settings(store, settings)
    return ctx


# --- Module Notes -----------------------------------------------------------
# One context per process. Tests build a fresh one per case, which also gives
# them a fresh authenticated set.
