"""
proxygate.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) with credential store connectivity validation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from proxygate.api.deps import context_from_app
from proxygate.services.context import AccessContext

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(ctx: AccessContext = Depends(context_from_app)) -> dict[str, str]:
    # A StoreError here becomes a 503 via the app's exception handler.
    if ctx.store is None:
        return {"status": "ready", "store": "disabled"}
    await ctx.store.ping()
    return {"status": "ready", "store": "ok"}
