"""
proxygate.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the access engine and API.
- Parse the comma-separated allow-list / static token variables.
- Hide secrets from repr/logging (static tokens, proxy password).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from proxygate.db.models import Role


class Settings(BaseSettings):
    """
    Env-driven configuration:
    - Defaults safe for local dev (SQLite store, open access)
    - Single settings object injected across layers
    """

    model_config = SettingsConfigDict(env_prefix="PROXYGATE_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "proxygate"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Persistence. An empty url runs the engine without a credential store.
    database_url: str = "sqlite+aiosqlite:///./proxygate.db"
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # Static credentials
    allowed_user_ids: Annotated[list[int], NoDecode] = Field(default_factory=list)
    auth_tokens: Annotated[list[str], NoDecode] = Field(default_factory=list, repr=False)
    auth_token: str = Field(default="", repr=False)
    default_role: Role = Role.free

    # Rate limiting
    rate_limit_free_per_min: int = Field(default=10, ge=0)
    rate_limit_premium_per_min: int = Field(default=60, ge=0)
    rate_limit_admin_per_min: int = Field(default=500, ge=0)
    throttle_seconds: float = Field(default=2.0, ge=0)
    rate_limit_failure_policy: Literal["open", "closed"] = "open"

    # Provisioned proxy endpoint
    proxy_host: str = ""
    proxy_port: str = ""
    proxy_user: str = ""
    proxy_pass: str = Field(default="", repr=False)

    @field_validator("allowed_user_ids", mode="before")
    @classmethod
    def _split_ids(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        # Unparseable entries are dropped rather than failing startup.
        ids: list[int] = []
        for part in value.split(","):
            part = part.strip()
            try:
                ids.append(int(part))
            except ValueError:
                continue
        return ids

    @field_validator("auth_tokens", mode="before")
    @classmethod
    def _split_tokens(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        return [p.strip() for p in value.split(",") if p.strip()]

    @property
    def static_tokens(self) -> list[str]:
        tokens = list(self.auth_tokens)
        tokens.extend(p.strip() for p in self.auth_token.split(",") if p.strip())
        return tokens


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Role lives in `db.models` because it is persisted; settings only references it.
