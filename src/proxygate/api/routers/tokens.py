"""
proxygate.api.routers.tokens

Administrative token issuance (`/issue_token <role> [ttl]`).
"""

from __future__ import annotations

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from proxygate.api.deps import access_service, principal_id
from proxygate.auth.ttl import parse_ttl
from proxygate.db.models import Role
from proxygate.services.access_service import AccessService

router = APIRouter(prefix="/v1/tokens", tags=["tokens"])


class IssueTokenRequest(BaseModel):
    role: Role
    ttl: timedelta | None = Field(default=None, description="e.g. 30m, 24h, 7d; omit for no expiry")

    @field_validator("ttl", mode="before")
    @classmethod
    def _parse_ttl(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_ttl(value)
        return value


class IssueTokenResponse(BaseModel):
    token: str
    role: Role
    expires_at: datetime | None


@router.post("", response_model=IssueTokenResponse, status_code=201)
async def issue_token(
    body: IssueTokenRequest,
    caller: int = Depends(principal_id),
    service: AccessService = Depends(access_service),
) -> IssueTokenResponse:
    issued = await service.issue_token(caller, role=body.role, ttl=body.ttl)
    return IssueTokenResponse(token=issued.token, role=issued.role, expires_at=issued.expires_at)
