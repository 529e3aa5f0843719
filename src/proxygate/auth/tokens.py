"""
proxygate.auth.tokens

Single-use token lifecycle.

Responsibilities:
- Mint opaque random tokens (24 chars, base62).
- Persist issued tokens with an optional expiry.
- Consume a token exactly once, collapsing every failure into `NotFound`.
"""

from __future__ import annotations

import random
import secrets
import string
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from proxygate.db.models import Role, utcnow
from proxygate.db.store import CredentialStore
from proxygate.errors import NotFound, StoreError
from proxygate.observability.logging import get_logger

log = get_logger(__name__)

ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase
TOKEN_LENGTH = 24


@dataclass(frozen=True, slots=True)
class IssuedToken:
    token: str
    role: Role
    expires_at: datetime | None


def generate_token(length: int = TOKEN_LENGTH) -> str:
    try:
        return "".join(secrets.choice(ALPHABET) for _ in range(length))
    except (NotImplementedError, OSError):
        # No OS entropy source: fall back to a time-seeded PRNG.
        rng = random.Random(time.time_ns())
        return "".join(rng.choice(ALPHABET) for _ in range(length))


class TokenManager:
    def __init__(
        self,
        store: CredentialStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    async def issue(
        self,
        role: Role,
        *,
        ttl: timedelta | None = None,
        issued_by: int | None = None,
    ) -> IssuedToken:
        """
        Mint and persist a new token granting `role` on consumption.

        `ttl=None` means the token never expires; a negative ttl produces a
        token that is already expired. Store failures (including a primary key
        collision) propagate as `StoreError`.
        """

        token = generate_token()
        expires_at = self._clock() + ttl if ttl is not None else None
        await self._store.create_token(
            token=token, role=role, expires_at=expires_at, issued_by=issued_by
        )
        log.info(
            "token_issued",
            role=role.value,
            issued_by=issued_by,
            expires_at=expires_at.isoformat() if expires_at else None,
        )
        return IssuedToken(token=token, role=role, expires_at=expires_at)

    async def consume(self, token: str, by_principal_id: int) -> Role:
        try:
            return await self._store.consume_token(token, by_principal_id=by_principal_id)
        except StoreError as e:
            # A failed or conflicting transaction never grants access.
            log.warning("token_consume_failed", principal_id=by_principal_id, error=str(e))
            raise NotFound("token could not be consumed") from e
