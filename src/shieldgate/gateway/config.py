"""Configuration for the ShieldGate service.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

A single :class:`ShieldGateSettings` value is constructed at startup and passed
explicitly into every component that needs it (database, action provider,
shield, signer, server). Nothing reads the environment after that point.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class ShieldGateSettings(BaseSettings):
    """Settings for the gateway and its HTTP server.

    Environment variables:
    - DATABASE_URL       (required)
    - APP_API_KEY        (required)
    - APP_ENV, LOG_LEVEL, HOST, PORT
    - YIELD_BASE_URL, YIELD_API_KEY, UPSTREAM_TIMEOUT_SECONDS, USE_MOCK_PROVIDER
    - SHIELD_MODE, SHIELD_ALLOWED_CHAIN_IDS, SHIELD_SUPPORTED_YIELDS
    - SIGNER_PRIVATE_KEY

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ShieldGateSettings(_env_file=None, ...)`.
    """

    environment: str = Field(
        default="development",
        validation_alias="APP_ENV",
        description="Deployment environment name; 'production' tightens validation",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, validation_alias="PORT", ge=1, le=65535)

    database_url: str = Field(
        default="",
        validation_alias="DATABASE_URL",
        description="SQLAlchemy URL; postgres:// URLs are rewritten to the psycopg driver",
    )
    app_api_key: str = Field(
        default="",
        validation_alias="APP_API_KEY",
        description="Shared secret expected in the X-Api-Key header",
    )

    yield_base_url: str = Field(
        default="https://api.yield.xyz", validation_alias="YIELD_BASE_URL"
    )
    yield_api_key: str = Field(default="", validation_alias="YIELD_API_KEY")
    upstream_timeout_seconds: float = Field(
        default=10.0,
        validation_alias="UPSTREAM_TIMEOUT_SECONDS",
        gt=0,
        description="Client-side deadline for every call to the action source",
    )
    use_mock_provider: bool = Field(
        default=False,
        validation_alias="USE_MOCK_PROVIDER",
        description="Serve a fixed two-step fixture instead of calling the Yield API",
    )

    shield_mode: Literal["enforce", "skip"] = Field(
        default="enforce", validation_alias="SHIELD_MODE"
    )
    shield_allowed_chain_ids: str = Field(
        default="",
        validation_alias="SHIELD_ALLOWED_CHAIN_IDS",
        description="Comma-separated chain ids accepted by the shield (empty = any)",
    )
    shield_supported_yields: str = Field(
        default="",
        validation_alias="SHIELD_SUPPORTED_YIELDS",
        description="Comma-separated yield ids accepted by the shield (empty = any)",
    )

    signer_private_key: str = Field(default="", validation_alias="SIGNER_PRIVATE_KEY")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _require_core_settings(self) -> ShieldGateSettings:
        missing: list[str] = []
        if not self.database_url.strip():
            missing.append("DATABASE_URL")
        if not self.app_api_key.strip():
            missing.append("APP_API_KEY")
        if self.is_production and not self.use_mock_provider and not self.yield_api_key.strip():
            missing.append("YIELD_API_KEY")
        if missing:
            raise ValueError(f"Missing required env vars: {', '.join(missing)}")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    def parsed_allowed_chain_ids(self) -> set[int]:
        return {int(part) for part in _split_csv(self.shield_allowed_chain_ids)}

    def parsed_supported_yields(self) -> set[str]:
        return set(_split_csv(self.shield_supported_yields))
