"""
proxygate.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Expose the process-wide `AccessContext` stored on app.state.
- Resolve the calling principal from the `X-Principal-Id` header.
"""

from __future__ import annotations

from fastapi import Depends, Header, Request

from proxygate.services.access_service import AccessService
from proxygate.services.context import AccessContext


def context_from_app(request: Request) -> AccessContext:
    # The context is built on app startup in `proxygate.api.app.create_app`.
    return request.app.state.context  # type: ignore[attr-defined]


def access_service(ctx: AccessContext = Depends(context_from_app)) -> AccessService:
    return AccessService(ctx)


def principal_id(x_principal_id: int = Header(alias="X-Principal-Id")) -> int:
    # The upstream chat adapter is trusted to set this from the message sender.
    return x_principal_id


# --- Module Notes -----------------------------------------------------------
# A missing or non-integer header is rejected by FastAPI validation (422).
