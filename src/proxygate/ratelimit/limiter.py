"""
proxygate.ratelimit.limiter

Per-principal rate limiter over the persisted rate-event log.

Responsibilities:
- Map a principal's role to its requests-per-minute quota.
- Throttle every call by a fixed delay before evaluating the quota.
- Admit or deny against a sliding 60 second window and record admitted events.
- Apply the configured policy (fail open / fail closed) to store failures.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal

from proxygate.db.models import Role, User, utcnow
from proxygate.db.store import CredentialStore
from proxygate.errors import StoreError
from proxygate.observability.logging import get_logger
from proxygate.settings import Settings

log = get_logger(__name__)

WINDOW = timedelta(minutes=1)

FailurePolicy = Literal["open", "closed"]


@dataclass(frozen=True, slots=True)
class RoleLimits:
    free: int
    premium: int
    admin: int

    def for_role(self, role: Role) -> int:
        if role == Role.admin:
            return self.admin
        if role == Role.premium:
            return self.premium
        return self.free


class RateLimiter:
    def __init__(
        self,
        store: CredentialStore,
        limits: RoleLimits,
        *,
        throttle_seconds: float = 0.0,
        failure_policy: FailurePolicy = "open",
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._limits = limits
        self._throttle = throttle_seconds
        self._failure_policy = failure_policy
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_settings(cls, store: CredentialStore, settings: Settings) -> RateLimiter:
        return cls(
            store,
            RoleLimits(
                free=settings.rate_limit_free_per_min,
                premium=settings.rate_limit_premium_per_min,
                admin=settings.rate_limit_admin_per_min,
            ),
            throttle_seconds=settings.throttle_seconds,
            failure_policy=settings.rate_limit_failure_policy,
        )

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    async def allow(self, user: User, kind: str) -> bool:
        """
        Return True and record an event if `user` is under quota, else False.

        Every call first waits the throttle delay, whatever the outcome.
        Store errors propagate as `StoreError`; see `check` for the policy-
        applying variant.
        """

        limit = self._limits.for_role(user.role)
        if self._throttle > 0:
            await self._sleep(self._throttle)

        now = self._clock()
        return await self._store.admit_rate_event(
            principal_id=user.principal_id,
            kind=kind,
            since=now - WINDOW,
            limit=limit,
            at=now,
        )

    async def check(self, user: User, kind: str) -> bool:
        try:
            allowed = await self.allow(user, kind)
        except StoreError as e:
            log.error(
                "rate_check_failed",
                principal_id=user.principal_id,
                policy=self._failure_policy,
                error=str(e),
            )
            return self._failure_policy == "open"
        if not allowed:
            log.info("rate_limited", principal_id=user.principal_id, role=user.role.value, kind=kind)
        return allowed


# --- Module Notes -----------------------------------------------------------
# Throttle-by-sleeping holds the request task (not a thread) for the delay.
# Replacing it with a token bucket would only change `allow`.
