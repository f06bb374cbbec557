"""FastAPI app factory.

Endpoints are thin wrappers over the gateway services: authentication and the
idempotency guard run here, business rules live in `shieldgate.gateway`.
"""

from __future__ import annotations

import hmac
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, Header, Query, Request, Response

from shieldgate import __version__
from shieldgate.actions.factory import ActionProviderFactory
from shieldgate.actions.provider import ActionProvider
from shieldgate.gateway.config import ShieldGateSettings
from shieldgate.gateway.errors import Unauthorized
from shieldgate.gateway.idempotency import IdempotencyGuard, IdempotencyStore, make_scope
from shieldgate.gateway.logging import reset_trace_id, set_trace_id
from shieldgate.gateway.storage.database import Database
from shieldgate.gateway.workflow.service import WorkflowService
from shieldgate.gateway.workflow.store import WorkflowStore
from shieldgate.server.errors import TRACE_HEADER, install_error_handlers
from shieldgate.server.models import (
    ApiDatabaseHealth,
    ApiHealth,
    ApiStep,
    ApiWorkflowWithSteps,
    CreateWorkflowRequest,
)
from shieldgate.shield.validator import TransactionValidator, create_validator
from shieldgate.signer.local_signer import LocalSigner, Signer

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


def create_app(
    settings: ShieldGateSettings | None = None,
    *,
    database: Database | None = None,
    action_provider: ActionProvider | None = None,
    validator: TransactionValidator | None = None,
    signer: Signer | None = None,
) -> FastAPI:
    """Wire the gateway components into a FastAPI application.

    Collaborators not passed in are built from ``settings``; tests inject fakes.
    """

    settings = settings or ShieldGateSettings()
    database = database or Database.from_url(settings.database_url)
    database.create_schema()

    action_provider = action_provider or ActionProviderFactory.create(settings)
    validator = validator or create_validator(settings)
    signer = signer or LocalSigner(settings.signer_private_key)

    service = WorkflowService(
        store=WorkflowStore(database),
        action_provider=action_provider,
        validator=validator,
    )
    guard = IdempotencyGuard(IdempotencyStore(database))

    app = FastAPI(
        title="ShieldGate API",
        version=__version__,
        description="Idempotent workflow gateway: create, validate and sign yield actions.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Expose components for request handlers and tests that want to read them.
    app.state.settings = settings
    app.state.database = database
    app.state.workflow_service = service

    install_error_handlers(app)

    @app.middleware("http")
    async def bind_trace_id(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        trace_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.trace_id = trace_id
        token = set_trace_id(trace_id)
        try:
            response = await call_next(request)
        finally:
            reset_trace_id(token)
        response.headers[TRACE_HEADER] = trace_id
        return response

    def require_api_key(
        api_key: str | None = Header(default=None, alias="X-Api-Key"),
    ) -> None:
        expected = settings.app_api_key
        if not api_key or not hmac.compare_digest(api_key.encode(), expected.encode()):
            raise Unauthorized()

    @app.get("/v1/health", response_model=None)
    def health() -> dict[str, Any]:
        try:
            database.ping()
            db = ApiDatabaseHealth(ok=True)
        except Exception as e:
            logger.warning("Database health check failed", extra={"error": str(e)})
            db = ApiDatabaseHealth(ok=False, error=str(e))
        return ApiHealth(ok=db.ok, time=datetime.now(tz=UTC), db=db).model_dump(
            mode="json", exclude_none=True
        )

    @app.post(
        "/v1/workflows",
        status_code=201,
        dependencies=[Depends(require_api_key)],
        response_model=None,
    )
    def create_workflow(
        payload: CreateWorkflowRequest,
        request: Request,
        idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    ) -> dict[str, Any]:
        def operation() -> dict[str, Any]:
            created = service.create_workflow(payload.to_action_request())
            return ApiWorkflowWithSteps.from_record(created).to_json()

        return guard.execute(
            scope=make_scope(request.method, request.url.path),
            key=idempotency_key,
            body=payload.model_dump(mode="json", by_alias=True, exclude_none=True),
            operation=operation,
        )

    @app.get(
        "/v1/workflows/{workflow_id}",
        dependencies=[Depends(require_api_key)],
        response_model=None,
    )
    def get_workflow(
        workflow_id: str,
        include_signed: bool = Query(default=False, alias="includeSigned"),
    ) -> dict[str, Any]:
        found = service.get_workflow(workflow_id, include_signed_payload=include_signed)
        return ApiWorkflowWithSteps.from_record(found).to_json()

    @app.post(
        "/v1/workflows/{workflow_id}/steps/{step_id}/sign",
        status_code=201,
        dependencies=[Depends(require_api_key)],
        response_model=None,
    )
    def sign_step(
        workflow_id: str,
        step_id: str,
        request: Request,
        idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    ) -> dict[str, Any]:
        def operation() -> dict[str, Any]:
            step = service.sign_step(workflow_id, step_id, signer)
            # The signed payload is only ever read back through GET ?includeSigned=true.
            return ApiStep.from_record(step.model_copy(update={"signed_payload": None})).to_json()

        return guard.execute(
            scope=make_scope(request.method, request.url.path),
            key=idempotency_key,
            body={"workflowId": workflow_id, "stepId": step_id},
            operation=operation,
        )

    logger.info(
        "App created",
        extra={
            "environment": settings.environment,
            "shield_mode": settings.shield_mode,
            "mock_provider": settings.use_mock_provider,
        },
    )
    return app
