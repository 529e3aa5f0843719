"""
proxygate.api.app

FastAPI app factory for the proxy access gateway.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Build and dispose the process-wide `AccessContext` in the lifespan.
- Map engine errors to uniform HTTP responses.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_403_FORBIDDEN,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from proxygate import __version__
from proxygate.api.routers.access import router as access_router
from proxygate.api.routers.health import router as health_router
from proxygate.api.routers.tokens import router as tokens_router
from proxygate.errors import AccessDenied, InvalidCredential, RateLimited, StoreError
from proxygate.observability.logging import configure_logging, get_logger
from proxygate.observability.middleware import RequestContextMiddleware
from proxygate.services.context import build_context
from proxygate.settings import Settings

log = get_logger(__name__)

# Denials and bad credentials share one body so callers can't probe which applied.
ACCESS_DENIED_DETAIL = "Access denied"


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        app.state.context = await build_context(settings)
        try:
            yield
        finally:
            await app.state.context.close()
            log.info("shutdown")

    app = FastAPI(
        title="Proxy Access Gateway",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(access_router)
    app.include_router(tokens_router)

    @app.exception_handler(AccessDenied)
    @app.exception_handler(InvalidCredential)
    async def _denied(_: Request, __: Exception) -> JSONResponse:
        return JSONResponse(status_code=HTTP_403_FORBIDDEN, content={"detail": ACCESS_DENIED_DETAIL})

    @app.exception_handler(RateLimited)
    async def _limited(_: Request, __: RateLimited) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_429_TOO_MANY_REQUESTS, content={"detail": "Too many requests"}
        )

    @app.exception_handler(StoreError)
    async def _store_failed(_: Request, exc: StoreError) -> JSONResponse:
        log.error("store_error", error=str(exc))
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE, content={"detail": "Service unavailable"}
        )

    return app


# --- Module Notes -----------------------------------------------------------
# Tests drive the lifespan explicitly (`app.router.lifespan_context(app)`)
# because httpx's ASGITransport does not run it.
