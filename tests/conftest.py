"""
tests.conftest

Shared fixtures.

Responsibilities:
- Provide a file-backed SQLite credential store per test (separate connections
  are needed to exercise concurrent transactions).
- Provide a controllable clock for time-window tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio

from proxygate.db.init_db import init_db
from proxygate.db.session import create_engine, create_sessionmaker
from proxygate.db.store import CredentialStore
from proxygate.settings import Settings


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0))


@pytest.fixture
def db_settings(tmp_path: Path) -> Settings:
    return Settings(env="test", database_url=sqlite_url(tmp_path / "store.db"))


@pytest_asyncio.fixture
async def store(db_settings: Settings) -> AsyncIterator[CredentialStore]:
    engine = create_engine(db_settings)
    await init_db(engine)
    try:
        yield CredentialStore(create_sessionmaker(engine), timeout=10.0)
    finally:
        await engine.dispose()
