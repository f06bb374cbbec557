"""Pydantic models for the REST server."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shieldgate.actions.provider import ActionRequest
from shieldgate.gateway.workflow.records import StepRecord, WorkflowWithSteps
from shieldgate.gateway.workflow.state_machine import Intent, StepStatus, WorkflowStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateWorkflowRequest(_CamelModel):
    model_config = ConfigDict(extra="forbid")

    intent: Intent
    yield_id: str = Field(min_length=1)
    address: str = Field(min_length=1)
    arguments: dict[str, Any]
    action: str | None = None
    passthrough: dict[str, Any] | None = None

    def to_action_request(self) -> ActionRequest:
        return ActionRequest(
            intent=self.intent,
            yield_id=self.yield_id,
            address=self.address,
            arguments=self.arguments,
            action=self.action,
            passthrough=self.passthrough,
        )


class ApiWorkflow(_CamelModel):
    id: str
    intent: Intent
    yield_id: str
    address: str
    status: WorkflowStatus
    created_at: datetime
    updated_at: datetime


class ApiStep(_CamelModel):
    id: str
    step_index: int
    network: str
    title: str
    status: StepStatus
    tx_id: str | None = None
    is_message: bool = False
    shield_ok: bool
    shield_reason: str | None = None
    unsigned_transaction: Any = None
    structured_transaction: Any = None
    annotated_transaction: Any = None
    created_at: datetime
    updated_at: datetime
    signed_payload: str | None = None

    @classmethod
    def from_record(cls, record: StepRecord) -> ApiStep:
        return cls(
            id=record.id,
            step_index=record.step_index,
            network=record.network,
            title=record.title,
            status=record.status,
            tx_id=record.tx_id,
            is_message=record.is_message,
            shield_ok=record.shield_ok,
            shield_reason=record.shield_reason,
            unsigned_transaction=record.unsigned_tx,
            structured_transaction=record.structured_tx,
            annotated_transaction=record.annotated_tx,
            created_at=record.created_at,
            updated_at=record.updated_at,
            signed_payload=record.signed_payload,
        )

    def to_json(self) -> dict[str, Any]:
        body = self.model_dump(mode="json", by_alias=True)
        # Unsigned steps and default reads never carry the key at all.
        if self.signed_payload is None:
            body.pop("signedPayload")
        return body


class ApiWorkflowWithSteps(_CamelModel):
    workflow: ApiWorkflow
    steps: list[ApiStep]

    @classmethod
    def from_record(cls, record: WorkflowWithSteps) -> ApiWorkflowWithSteps:
        return cls(
            workflow=ApiWorkflow(
                id=record.workflow.id,
                intent=record.workflow.intent,
                yield_id=record.workflow.yield_id,
                address=record.workflow.address,
                status=record.workflow.status,
                created_at=record.workflow.created_at,
                updated_at=record.workflow.updated_at,
            ),
            steps=[ApiStep.from_record(step) for step in record.steps],
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow.model_dump(mode="json", by_alias=True),
            "steps": [step.to_json() for step in self.steps],
        }


class ApiDatabaseHealth(BaseModel):
    ok: bool
    error: str | None = None


class ApiHealth(BaseModel):
    ok: bool
    time: datetime
    db: ApiDatabaseHealth
