"""
proxygate.db.repositories.users

Repository for `User` (principal) rows.

Responsibilities:
- Idempotent insert-or-update keyed by principal id.
- Insert-if-absent registration that never touches an existing row.
- Point lookup by principal id.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from proxygate.db.models import Role, User, utcnow

_NATIVE_UPSERT = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, *, principal_id: int, role: Role, is_authenticated: bool) -> None:
        now = utcnow()
        insert = _NATIVE_UPSERT.get(self._session.get_bind().dialect.name)
        if insert is not None:
            # Single statement: concurrent first-time upserts for one principal can't collide.
            stmt = insert(User).values(
                principal_id=principal_id,
                role=role,
                is_authenticated=is_authenticated,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[User.principal_id],
                set_={
                    "role": stmt.excluded.role,
                    "is_authenticated": stmt.excluded.is_authenticated,
                    "updated_at": now,
                },
            )
            await self._session.execute(stmt)
            return

        user = await self._session.get(User, principal_id, with_for_update=True)
        if user is None:
            self._session.add(
                User(principal_id=principal_id, role=role, is_authenticated=is_authenticated)
            )
        else:
            user.role = role
            user.is_authenticated = is_authenticated
            user.updated_at = now
        await self._session.flush()

    async def insert_if_absent(
        self, *, principal_id: int, role: Role, is_authenticated: bool
    ) -> bool:
        now = utcnow()
        insert = _NATIVE_UPSERT.get(self._session.get_bind().dialect.name)
        if insert is not None:
            stmt = (
                insert(User)
                .values(
                    principal_id=principal_id,
                    role=role,
                    is_authenticated=is_authenticated,
                    created_at=now,
                    updated_at=now,
                )
                .on_conflict_do_nothing(index_elements=[User.principal_id])
            )
            result = await self._session.execute(stmt)
            return result.rowcount == 1

        if await self._session.get(User, principal_id, with_for_update=True) is not None:
            return False
        self._session.add(
            User(principal_id=principal_id, role=role, is_authenticated=is_authenticated)
        )
        await self._session.flush()
        return True

    async def get(self, principal_id: int) -> User | None:
        stmt = select(User).where(User.principal_id == principal_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()
