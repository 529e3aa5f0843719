"""
proxygate.db

Persistence package (SQLAlchemy async): the credential store.

Responsibilities:
- Provide ORM models, engine/session setup, repositories and the store facade.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Engine code talks to `db.store.CredentialStore` only; repositories stay internal.
