"""Test configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from shieldgate.actions.mock_provider import MockActionProvider
from shieldgate.gateway.config import ShieldGateSettings
from shieldgate.gateway.idempotency import IdempotencyGuard, IdempotencyStore
from shieldgate.gateway.storage.database import Database
from shieldgate.gateway.workflow.service import WorkflowService
from shieldgate.gateway.workflow.store import WorkflowStore
from shieldgate.server.app import create_app
from shieldgate.shield.validator import SkipValidator
from shieldgate.signer.local_signer import LocalSigner

# Well-known Hardhat development account #0. Never holds real funds.
SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

API_KEY = "test-key"


@pytest.fixture
def settings(tmp_path: Path) -> ShieldGateSettings:
    """Provide settings backed by a temp-file SQLite database and the mock provider."""
    return ShieldGateSettings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'shieldgate.db'}",
        app_api_key=API_KEY,
        use_mock_provider=True,
        shield_mode="skip",
        signer_private_key=SIGNER_KEY,
    )


@pytest.fixture
def database(settings: ShieldGateSettings) -> Iterator[Database]:
    """Provide a database with the schema created."""
    db = Database.from_url(settings.database_url)
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def workflow_store(database: Database) -> WorkflowStore:
    return WorkflowStore(database)


@pytest.fixture
def idempotency_store(database: Database) -> IdempotencyStore:
    return IdempotencyStore(database)


@pytest.fixture
def guard(idempotency_store: IdempotencyStore) -> IdempotencyGuard:
    return IdempotencyGuard(idempotency_store)


@pytest.fixture
def service(workflow_store: WorkflowStore) -> WorkflowService:
    """Provide a workflow service over the fixture action source with shield skipped."""
    return WorkflowService(
        store=workflow_store,
        action_provider=MockActionProvider(),
        validator=SkipValidator(),
    )


@pytest.fixture
def signer() -> LocalSigner:
    return LocalSigner(SIGNER_KEY)


@pytest.fixture
def client(settings: ShieldGateSettings, database: Database) -> TestClient:
    """Provide an API client with the API key header preset."""
    app = create_app(settings, database=database)
    return TestClient(app, headers={"X-Api-Key": API_KEY})
