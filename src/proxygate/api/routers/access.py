"""
proxygate.api.routers.access

Principal-facing command endpoints.

Responsibilities:
- `/start` deep-link authentication and `/auth` token authentication.
- `/proxy` connection details behind authorization + rate limiting.
- `/status` and `/disable` helpers.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from proxygate.api.deps import access_service, principal_id
from proxygate.db.models import Role
from proxygate.services.access_service import AccessService

router = APIRouter(prefix="/v1", tags=["access"])


class StartRequest(BaseModel):
    payload: str | None = Field(default=None, max_length=256)


class StartResponse(BaseModel):
    authorized: bool = True
    authenticated_now: bool


class AuthRequest(BaseModel):
    token: str = Field(min_length=1, max_length=256)


class AuthResponse(BaseModel):
    authenticated: bool = True
    role: Role


class ProxyResponse(BaseModel):
    link: str
    host: str
    port: str
    user: str
    # The password itself is only carried inside `link`.
    has_password: bool


class StatusResponse(BaseModel):
    principal_id: int
    role: Role | None
    is_authenticated: bool


class DisableResponse(BaseModel):
    instructions: str
    settings_link: str


@router.post("/start", response_model=StartResponse)
async def start(
    body: StartRequest,
    caller: int = Depends(principal_id),
    service: AccessService = Depends(access_service),
) -> StartResponse:
    authenticated_now = await service.start(caller, body.payload)
    return StartResponse(authenticated_now=authenticated_now)


@router.post("/auth", response_model=AuthResponse)
async def authenticate(
    body: AuthRequest,
    caller: int = Depends(principal_id),
    service: AccessService = Depends(access_service),
) -> AuthResponse:
    role = await service.authenticate(caller, body.token)
    return AuthResponse(role=role)


@router.post("/proxy", response_model=ProxyResponse)
async def proxy(
    caller: int = Depends(principal_id),
    service: AccessService = Depends(access_service),
) -> ProxyResponse:
    offer = await service.request_proxy(caller)
    return ProxyResponse(
        link=offer.link,
        host=offer.host,
        port=offer.port,
        user=offer.user,
        has_password=offer.has_password,
    )


@router.get("/status", response_model=StatusResponse)
async def status(
    caller: int = Depends(principal_id),
    service: AccessService = Depends(access_service),
) -> StatusResponse:
    st = await service.status(caller)
    return StatusResponse(
        principal_id=st.principal_id, role=st.role, is_authenticated=st.is_authenticated
    )


@router.get("/disable", response_model=DisableResponse)
async def disable(
    caller: int = Depends(principal_id),
    service: AccessService = Depends(access_service),
) -> DisableResponse:
    instructions, link = service.disable(caller)
    return DisableResponse(instructions=instructions, settings_link=link)


# --- Module Notes -----------------------------------------------------------
# Every failure is raised as an engine error and rendered by `api.app`.
