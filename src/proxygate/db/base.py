"""
proxygate.db.base

SQLAlchemy declarative base shared by the users/tokens/rate_events models.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# --- Module Notes -----------------------------------------------------------
# Alembic's env.py imports `Base.metadata` from here for autogeneration.
