"""
proxygate.db.models

Persistence schema for the credential store.

Responsibilities:
- Define ORM models for the access engine:
  - User: principal record (role + auth flag)
  - Token: single-use credential, retained after consumption as an audit trail
  - RateEvent: append-only log counted by the rate limiter
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from proxygate.db.base import Base


def utcnow() -> datetime:
    # Persist naive UTC timestamps; every comparison in the engine uses the same convention.
    return datetime.now(UTC).replace(tzinfo=None)


class Role(enum.StrEnum):
    # Enum values are stored in DB; treat as stable API contract.
    free = "free"
    premium = "premium"
    admin = "admin"


_role_enum = Enum(
    Role,
    name="role",
    native_enum=False,
    values_callable=lambda roles: [r.value for r in roles],
    length=16,
)


class User(Base):
    __tablename__ = "users"

    principal_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    role: Mapped[Role] = mapped_column(_role_enum, nullable=False)
    is_authenticated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


class Token(Base):
    __tablename__ = "tokens"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    role: Mapped[Role] = mapped_column(_role_enum, nullable=False)

    # NULL expires_at means the token never expires; NULL consumed_at means unspent.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    issued_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    issued_to: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class RateEvent(Base):
    __tablename__ = "rate_events"

    # Integer (not BigInteger) so SQLite maps it to a ROWID alias with autoincrement.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    principal_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    kind: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("ix_rate_events_principal_created", "principal_id", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# Rows in `tokens` and `rate_events` are never deleted by the engine; retention,
# if needed, is an operational job outside this service.
