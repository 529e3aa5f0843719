"""
proxygate.db.repositories

Repository package.

Responsibilities:
- Group session-scoped data-access helpers for users, tokens and rate events.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories never commit; transaction boundaries belong to `db.store`.
