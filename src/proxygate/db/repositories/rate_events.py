from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from proxygate.db.models import RateEvent


class RateEventRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def count_since(self, *, principal_id: int, since: datetime) -> int:
        # Served by ix_rate_events_principal_created.
        stmt = (
            select(func.count())
            .select_from(RateEvent)
            .where(RateEvent.principal_id == principal_id, RateEvent.created_at >= since)
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def add(self, *, principal_id: int, kind: str, at: datetime) -> RateEvent:
        # Append-only: events are never updated once written.
        ev = RateEvent(principal_id=principal_id, kind=kind, created_at=at)
        self._session.add(ev)
        await self._session.flush()
        return ev
