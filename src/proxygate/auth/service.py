"""
proxygate.auth.service

Authorization service: the access decision and credential check for principals.

Responsibilities:
- Hold the static allow-list and static token set (read-only after startup).
- Track principals authenticated during this process lifetime.
- Authenticate static tokens first, then store-issued single-use tokens.
- Persist the principal's role after a successful authentication (best effort).
"""

from __future__ import annotations

from collections.abc import Iterable

from proxygate.auth.rwlock import ReadWriteLock
from proxygate.auth.tokens import TokenManager
from proxygate.db.models import Role
from proxygate.db.store import CredentialStore
from proxygate.errors import InvalidCredential, NotFound, StoreError
from proxygate.observability.logging import get_logger
from proxygate.settings import Settings

log = get_logger(__name__)


class AuthorizationService:
    """
    Access policy, evaluated in order:
    - non-empty allow-list: allow-listed or authenticated principals only
    - static tokens configured: authenticated principals only
    - neither: open access

    The authenticated set is a per-process cache; it is cleared on restart and
    is only ever populated by a successful `authenticate`.
    """

    def __init__(
        self,
        *,
        allowed_ids: Iterable[int] = (),
        tokens: Iterable[str] = (),
        default_role: Role = Role.free,
    ) -> None:
        self._allowed: frozenset[int] = frozenset(allowed_ids)
        self._tokens: frozenset[str] = frozenset(t for t in tokens if t)
        self._authenticated: set[int] = set()
        self._lock = ReadWriteLock()
        self._default_role = default_role

        self._store: CredentialStore | None = None
        self._token_manager: TokenManager | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthorizationService:
        return cls(
            allowed_ids=settings.allowed_user_ids,
            tokens=settings.static_tokens,
            default_role=settings.default_role,
        )

    def attach_store(self, store: CredentialStore, token_manager: TokenManager) -> None:
        # Enables the issued-token path and user persistence.
        self._store = store
        self._token_manager = token_manager

    @property
    def default_role(self) -> Role:
        return self._default_role

    def is_allow_listed(self, principal_id: int) -> bool:
        # Static configuration; no lock needed for a frozenset.
        return principal_id in self._allowed

    def authorize_by_id(self, principal_id: int) -> bool:
        with self._lock.read():
            if self._allowed:
                return principal_id in self._allowed or principal_id in self._authenticated
            if self._tokens:
                return principal_id in self._authenticated
            return True

    async def authenticate(self, token: str, principal_id: int) -> Role:
        """
        Authenticate `principal_id` with `token` and return the granted role.

        Raises `InvalidCredential` for any unknown, spent or expired token, and
        also when the issued-token transaction fails; in that case no
        in-memory or persisted state has changed.
        """

        if not token:
            raise InvalidCredential("invalid credential")

        with self._lock.read():
            static_hit = token in self._tokens

        if static_hit:
            role = self._default_role
            source = "static"
        elif self._token_manager is not None:
            try:
                role = await self._token_manager.consume(token, principal_id)
            except NotFound as e:
                log.info("auth_failed", principal_id=principal_id)
                raise InvalidCredential("invalid credential") from e
            source = "issued"
        else:
            log.info("auth_failed", principal_id=principal_id)
            raise InvalidCredential("invalid credential")

        with self._lock.write():
            self._authenticated.add(principal_id)

        await self._persist_user(principal_id, role)
        log.info("auth_ok", principal_id=principal_id, role=role.value, source=source)
        return role

    async def _persist_user(self, principal_id: int, role: Role) -> None:
        if self._store is None:
            return
        try:
            await self._store.upsert_user(
                principal_id=principal_id, role=role, is_authenticated=True
            )
        except StoreError as e:
            # In-memory authentication already succeeded and stands.
            log.warning("user_upsert_failed", principal_id=principal_id, error=str(e))


# --- Module Notes -----------------------------------------------------------
# A multi-instance deployment would replace `_authenticated` with a store-backed
# session table with a TTL, consulted on every `authorize_by_id` call.
