"""
proxygate.db.store

Credential store facade (transaction owner).

Responsibilities:
- Run every store operation in its own bounded transaction.
- Translate SQLAlchemy failures and timeouts into `StoreError`.
- Provide the atomic token consumption and count+insert rate admission
  the engine relies on for correctness.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from proxygate.db.models import Role, User, utcnow
from proxygate.db.repositories.rate_events import RateEventRepo
from proxygate.db.repositories.tokens import TokenRepo
from proxygate.db.repositories.users import UserRepo
from proxygate.errors import NotFound, StoreError


class CredentialStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeout: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self._timeout = timeout

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        # Commit on clean exit, rollback on any exception (including NotFound).
        try:
            async with asyncio.timeout(self._timeout):
                async with self._session_factory() as session, session.begin():
                    yield session
        except SQLAlchemyError as e:
            raise StoreError(str(e)) from e
        except TimeoutError as e:
            raise StoreError("credential store timed out") from e

    async def ping(self) -> None:
        async with self._transaction() as session:
            await session.execute(text("SELECT 1"))

    # Users

    async def upsert_user(self, *, principal_id: int, role: Role, is_authenticated: bool) -> None:
        async with self._transaction() as session:
            await UserRepo(session).upsert(
                principal_id=principal_id, role=role, is_authenticated=is_authenticated
            )

    async def register_user(
        self, *, principal_id: int, role: Role, is_authenticated: bool
    ) -> bool:
        """Insert `principal_id` unless a row already exists; return True if inserted."""
        async with self._transaction() as session:
            return await UserRepo(session).insert_if_absent(
                principal_id=principal_id, role=role, is_authenticated=is_authenticated
            )

    async def get_user(self, principal_id: int) -> User:
        async with self._transaction() as session:
            user = await UserRepo(session).get(principal_id)
        if user is None:
            raise NotFound(f"user {principal_id} not found")
        return user

    # Tokens

    async def create_token(
        self,
        *,
        token: str,
        role: Role,
        expires_at: datetime | None,
        issued_by: int | None,
    ) -> None:
        # A duplicate token string fails the INSERT (IntegrityError -> StoreError).
        async with self._transaction() as session:
            await TokenRepo(session).add(
                token=token, role=role, expires_at=expires_at, issued_by=issued_by
            )

    async def consume_token(self, token: str, *, by_principal_id: int) -> Role:
        """
        Atomically spend `token` on behalf of `by_principal_id` and return its role.

        Absent, already consumed and expired tokens all raise `NotFound`. The
        final write only matches an unconsumed row, so of two racing consumers
        at most one commits; the other sees zero affected rows (NotFound) or a
        transaction conflict (StoreError).
        """

        async with self._transaction() as session:
            tokens = TokenRepo(session)
            row = await tokens.get_for_update(token)
            if row is None:
                raise NotFound("token not found")
            now = utcnow()
            if row.consumed_at is not None:
                raise NotFound("token already consumed")
            if row.expires_at is not None and now > row.expires_at:
                raise NotFound("token expired")
            if not await tokens.mark_consumed(token=token, principal_id=by_principal_id, at=now):
                raise NotFound("token already consumed")
            return row.role

    # Rate events

    async def count_events_since(self, principal_id: int, since: datetime) -> int:
        async with self._transaction() as session:
            return await RateEventRepo(session).count_since(principal_id=principal_id, since=since)

    async def insert_rate_event(
        self, principal_id: int, kind: str, *, at: datetime | None = None
    ) -> None:
        async with self._transaction() as session:
            await RateEventRepo(session).add(
                principal_id=principal_id, kind=kind, at=at or utcnow()
            )

    async def admit_rate_event(
        self,
        *,
        principal_id: int,
        kind: str,
        since: datetime,
        limit: int,
        at: datetime,
    ) -> bool:
        # Count and insert share one transaction; limits are still soft under
        # READ COMMITTED when one principal bursts from many tasks at once.
        async with self._transaction() as session:
            events = RateEventRepo(session)
            if await events.count_since(principal_id=principal_id, since=since) >= limit:
                return False
            await events.add(principal_id=principal_id, kind=kind, at=at)
            return True


# --- Module Notes -----------------------------------------------------------
# The engine layers (auth, ratelimit) depend on this class only, which keeps
# the repositories free to change with the schema.
