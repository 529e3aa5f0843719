"""
proxygate.services.access_service

Command semantics on top of the access engine.

Responsibilities:
- Deep-link start (authorize, else try the payload as a token).
- Token authentication and admin token issuance.
- Proxy access: authorize, rate-limit by persisted role, register the principal.
- Status and disable-instructions lookups.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from proxygate.auth.tokens import IssuedToken
from proxygate.db.models import Role, User
from proxygate.errors import AccessDenied, InvalidCredential, NotFound, RateLimited, StoreError
from proxygate.observability.logging import get_logger
from proxygate.services.context import AccessContext
from proxygate.services.proxy_link import SETTINGS_LINK, build_socks_link

log = get_logger(__name__)

PROXY_ACTION = "proxy"

DISABLE_INSTRUCTIONS = (
    "To turn the proxy off: open Telegram -> Settings -> Data and Storage -> Proxy -> disable."
)


@dataclass(frozen=True, slots=True)
class ProxyOffer:
    link: str
    host: str
    port: str
    user: str
    has_password: bool


@dataclass(frozen=True, slots=True)
class PrincipalStatus:
    principal_id: int
    role: Role | None
    is_authenticated: bool


class AccessService:
    def __init__(self, ctx: AccessContext) -> None:
        self._ctx = ctx
        self._authz = ctx.authz

    def _require_authorized(self, principal_id: int) -> None:
        if not self._authz.authorize_by_id(principal_id):
            log.warning("access_denied", principal_id=principal_id)
            raise AccessDenied("access denied")

    async def start(self, principal_id: int, payload: str | None = None) -> bool:
        """
        Return True if the principal was authenticated by `payload` just now,
        False if it was already authorized; raise `AccessDenied` otherwise.
        """

        if self._authz.authorize_by_id(principal_id):
            return False
        log.warning("access_denied", principal_id=principal_id)
        token = (payload or "").strip()
        if token:
            try:
                await self._authz.authenticate(token, principal_id)
            except InvalidCredential as e:
                # Same outward signal as a plain denial.
                raise AccessDenied("access denied") from e
            log.info("authed_via_deeplink", principal_id=principal_id)
            return True
        raise AccessDenied("access denied")

    async def authenticate(self, principal_id: int, token: str) -> Role:
        return await self._authz.authenticate(token.strip(), principal_id)

    async def issue_token(
        self,
        principal_id: int,
        *,
        role: Role,
        ttl: timedelta | None = None,
    ) -> IssuedToken:
        self._require_authorized(principal_id)
        if self._ctx.tokens is None or self._ctx.store is None:
            raise StoreError("credential store is not configured")

        # Issuers must be allow-listed or hold a persisted admin role.
        if not self._authz.is_allow_listed(principal_id):
            try:
                issuer = await self._ctx.store.get_user(principal_id)
            except NotFound as e:
                raise AccessDenied("access denied") from e
            if issuer.role != Role.admin:
                log.warning("issue_denied", principal_id=principal_id, role=issuer.role.value)
                raise AccessDenied("access denied")

        return await self._ctx.tokens.issue(role, ttl=ttl, issued_by=principal_id)

    async def request_proxy(self, principal_id: int) -> ProxyOffer:
        self._require_authorized(principal_id)

        try:
            user = await self._load_user(principal_id)
        except StoreError as e:
            log.warning("user_lookup_failed", principal_id=principal_id, error=str(e))
            # Role unknown: apply the store-failure policy, and never register.
            limiter = self._ctx.limiter
            if limiter is not None and limiter.failure_policy == "closed":
                raise RateLimited("too many requests") from e
            return self._proxy_offer(principal_id)

        limiter = self._ctx.limiter
        if limiter is not None:
            # Unknown principals are limited at the default role's quota.
            subject = user or User(principal_id=principal_id, role=self._authz.default_role)
            if not await limiter.check(subject, PROXY_ACTION):
                raise RateLimited("too many requests")

        if user is None and self._ctx.store is not None:
            # Insert-if-absent: a role written concurrently by token auth wins.
            try:
                await self._ctx.store.register_user(
                    principal_id=principal_id,
                    role=self._authz.default_role,
                    is_authenticated=True,
                )
            except StoreError as e:
                log.warning("user_register_failed", principal_id=principal_id, error=str(e))

        return self._proxy_offer(principal_id)

    def _proxy_offer(self, principal_id: int) -> ProxyOffer:
        s = self._ctx.settings
        log.info("proxy_sent", principal_id=principal_id)
        return ProxyOffer(
            link=build_socks_link(s.proxy_host, s.proxy_port, s.proxy_user, s.proxy_pass),
            host=s.proxy_host,
            port=s.proxy_port,
            user=s.proxy_user,
            has_password=bool(s.proxy_pass),
        )

    async def status(self, principal_id: int) -> PrincipalStatus:
        if self._ctx.store is None:
            return PrincipalStatus(principal_id=principal_id, role=None, is_authenticated=False)
        user = await self._load_user(principal_id)
        if user is None:
            return PrincipalStatus(
                principal_id=principal_id,
                role=self._authz.default_role,
                is_authenticated=False,
            )
        return PrincipalStatus(
            principal_id=principal_id, role=user.role, is_authenticated=user.is_authenticated
        )

    def disable(self, principal_id: int) -> tuple[str, str]:
        self._require_authorized(principal_id)
        return DISABLE_INSTRUCTIONS, SETTINGS_LINK

    async def _load_user(self, principal_id: int) -> User | None:
        if self._ctx.store is None:
            return None
        try:
            return await self._ctx.store.get_user(principal_id)
        except NotFound:
            return None


# --- Module Notes -----------------------------------------------------------
# Errors raised here are mapped to HTTP responses in `api.app`; AccessDenied and
# InvalidCredential share one response so callers can't tell them apart.
