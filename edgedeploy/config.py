from __future__ import annotations

from uuid import UUID

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from edgedeploy.errors import ConfigError

DEFAULT_API_HOST = "https://api.deno.com/v1"


class DeploySettings(BaseSettings):
    # Explicit keyword arguments win over the environment, which wins over these defaults.
    DEPLOY_API_HOST: str = DEFAULT_API_HOST
    DEPLOY_API_TOKEN: str | None = None
    DEPLOY_ORGANIZATION_ID: str | None = None
    DEPLOY_REQUEST_TIMEOUT_SECONDS: float = 30.0

    DEPLOY_BUILD_TIMEOUT_SECONDS: float = 600.0
    DEPLOY_STATUS_POLL_INTERVAL_SECONDS: float = 5.0

    DOMAIN_VERIFICATION_TIMEOUT_SECONDS: float = 600.0
    DOMAIN_VERIFICATION_POLL_INTERVAL_SECONDS: float = 20.0

    @field_validator("DEPLOY_API_HOST")
    @classmethod
    def validate_host(cls, value: str) -> str:
        cleaned = (value or "").strip().rstrip("/")
        if not cleaned:
            return DEFAULT_API_HOST
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError("DEPLOY_API_HOST must start with http:// or https://")
        return cleaned

    @field_validator("DEPLOY_API_TOKEN")
    @classmethod
    def validate_token(cls, value: str | None) -> str | None:
        cleaned = (value or "").strip()
        return cleaned or None

    @field_validator("DEPLOY_ORGANIZATION_ID")
    @classmethod
    def validate_organization_id(cls, value: str | None) -> str | None:
        cleaned = (value or "").strip()
        if not cleaned:
            return None
        try:
            return str(UUID(cleaned))
        except ValueError as exc:
            raise ValueError(f"DEPLOY_ORGANIZATION_ID must be a UUID, got {cleaned!r}") from exc

    @field_validator(
        "DEPLOY_REQUEST_TIMEOUT_SECONDS",
        "DEPLOY_BUILD_TIMEOUT_SECONDS",
        "DEPLOY_STATUS_POLL_INTERVAL_SECONDS",
        "DOMAIN_VERIFICATION_TIMEOUT_SECONDS",
        "DOMAIN_VERIFICATION_POLL_INTERVAL_SECONDS",
    )
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts and poll intervals must be positive")
        return value

    @property
    def host(self) -> str:
        return self.DEPLOY_API_HOST

    @property
    def token(self) -> str | None:
        return self.DEPLOY_API_TOKEN

    @property
    def organization_id(self) -> str | None:
        return self.DEPLOY_ORGANIZATION_ID

    def require_token(self) -> str:
        if not self.DEPLOY_API_TOKEN:
            raise ConfigError(
                "Missing API token. Set it explicitly or use the DEPLOY_API_TOKEN environment variable."
            )
        return self.DEPLOY_API_TOKEN

    def require_organization_id(self) -> str:
        if not self.DEPLOY_ORGANIZATION_ID:
            raise ConfigError(
                "Organization ID is required to manage projects and domains. "
                "Set it explicitly or use the DEPLOY_ORGANIZATION_ID environment variable."
            )
        return self.DEPLOY_ORGANIZATION_ID

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = DeploySettings()
