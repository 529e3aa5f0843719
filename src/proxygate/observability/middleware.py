"""
proxygate.observability.middleware

Request-scoped logging context for gateway commands.

Every request gets a request id (propagated from `x-request-id` when the chat
adapter sends one) and, when the caller names itself, a `principal_id` field,
so engine events such as `rate_limited` or `auth_failed` can be joined back to
the command that caused them. One `request_done` event carries the status.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from proxygate.observability.logging import get_logger

log = get_logger(__name__)

PRINCIPAL_HEADER = "x-principal-id"


def _principal_from(request: Request) -> int | None:
    raw = request.headers.get(PRINCIPAL_HEADER, "").strip()
    try:
        return int(raw)
    except ValueError:
        return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            command=request.url.path,
        )
        principal_id = _principal_from(request)
        if principal_id is not None:
            structlog.contextvars.bind_contextvars(principal_id=principal_id)

        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
            log.info(
                "request_done",
                status=response.status_code,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers["x-request-id"] = request_id
        return response
