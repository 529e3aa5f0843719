"""
proxygate.errors

Exception taxonomy for the access engine.

Responsibilities:
- Give every failure mode of the engine a distinct, catchable type.
- Keep outward-facing failures coarse (one signal for any bad credential).
"""

from __future__ import annotations


class AccessError(Exception):
    """Base class for access engine failures."""


class InvalidCredential(AccessError):
    # Unknown, expired and already-consumed tokens all collapse into this one.
    pass


class NotFound(AccessError):
    # Store-level absence (token or user); mapped to InvalidCredential at the auth boundary.
    pass


class StoreError(AccessError):
    # Transport/transaction failure talking to the credential store.
    pass


class AccessDenied(AccessError):
    # Principal is not authorized for the requested action.
    pass


class RateLimited(AccessError):
    # Per-minute quota for the principal's role is exhausted.
    pass


# --- Module Notes -----------------------------------------------------------
# Callers should never branch on the *reason* a credential was rejected; that
# would turn the API into a token-enumeration oracle.
