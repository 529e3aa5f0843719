"""
proxygate.db.repositories.tokens

Repository for `Token` entities.

Responsibilities:
- Insert freshly minted tokens (primary key collisions surface on flush).
- Row-locking read and conditional "mark consumed" write used by consumption.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from proxygate.db.models import Role, Token


class TokenRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        token: str,
        role: Role,
        expires_at: datetime | None,
        issued_by: int | None,
    ) -> Token:
        row = Token(
            token=token,
            role=role,
            expires_at=expires_at,
            consumed_at=None,
            issued_by=issued_by,
            issued_to=None,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_for_update(self, token: str) -> Token | None:
        # FOR UPDATE serializes concurrent consumers on backends that support row locks.
        stmt = select(Token).where(Token.token == token).with_for_update()
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def mark_consumed(self, *, token: str, principal_id: int, at: datetime) -> bool:
        # Conditional on consumed_at IS NULL so only one writer can ever flip the row.
        stmt = (
            update(Token)
            .where(Token.token == token, Token.consumed_at.is_(None))
            .values(consumed_at=at, issued_to=principal_id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1
