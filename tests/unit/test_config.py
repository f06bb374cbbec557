"""Unit tests for configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from shieldgate.gateway.config import ShieldGateSettings
from shieldgate.gateway.storage.database import normalize_database_url

_ENV_VARS = (
    "APP_ENV",
    "DATABASE_URL",
    "APP_API_KEY",
    "YIELD_API_KEY",
    "USE_MOCK_PROVIDER",
    "SHIELD_MODE",
    "SHIELD_ALLOWED_CHAIN_IDS",
    "SHIELD_SUPPORTED_YIELDS",
    "UPSTREAM_TIMEOUT_SECONDS",
    "PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_settings_load_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./dev.db")
    monkeypatch.setenv("APP_API_KEY", "secret")
    monkeypatch.setenv("SHIELD_MODE", "skip")
    monkeypatch.setenv("SHIELD_ALLOWED_CHAIN_IDS", "1, 11155111,")
    monkeypatch.setenv("SHIELD_SUPPORTED_YIELDS", "a,b")
    monkeypatch.setenv("PORT", "8080")

    settings = ShieldGateSettings(_env_file=None)

    assert settings.database_url == "sqlite:///./dev.db"
    assert settings.app_api_key == "secret"
    assert settings.shield_mode == "skip"
    assert settings.port == 8080
    assert settings.parsed_allowed_chain_ids() == {1, 11155111}
    assert settings.parsed_supported_yields() == {"a", "b"}


def test_defaults() -> None:
    settings = ShieldGateSettings(_env_file=None, database_url="sqlite://", app_api_key="k")

    assert settings.environment == "development"
    assert settings.port == 3000
    assert settings.upstream_timeout_seconds == 10.0
    assert settings.shield_mode == "enforce"
    assert settings.use_mock_provider is False
    assert settings.yield_base_url == "https://api.yield.xyz"
    assert settings.parsed_allowed_chain_ids() == set()


def test_missing_required_settings_are_reported_together() -> None:
    with pytest.raises(ValidationError) as exc_info:
        ShieldGateSettings(_env_file=None)

    message = str(exc_info.value)
    assert "DATABASE_URL" in message
    assert "APP_API_KEY" in message


def test_production_requires_yield_key_unless_mocked() -> None:
    with pytest.raises(ValidationError, match="YIELD_API_KEY"):
        ShieldGateSettings(
            _env_file=None, environment="production", database_url="sqlite://", app_api_key="k"
        )

    mocked = ShieldGateSettings(
        _env_file=None,
        environment="production",
        database_url="sqlite://",
        app_api_key="k",
        use_mock_provider=True,
    )
    assert mocked.is_production is True


def test_invalid_shield_mode_is_rejected() -> None:
    with pytest.raises(ValidationError):
        ShieldGateSettings(
            _env_file=None, database_url="sqlite://", app_api_key="k", shield_mode="off"
        )


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgres://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+psycopg://u:p@db/app"),
        ("sqlite:///./dev.db", "sqlite:///./dev.db"),
    ],
)
def test_database_url_normalization(url: str, expected: str) -> None:
    assert normalize_database_url(url) == expected
