"""Persisted workflow records as seen by the service layer."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from shieldgate.gateway.storage.models import AuditEventRow, StepRow, WorkflowRow
from shieldgate.gateway.workflow.events import AuditEventType
from shieldgate.gateway.workflow.state_machine import Intent, StepStatus, WorkflowStatus


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we write is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class WorkflowRecord(BaseModel):
    id: str
    intent: Intent
    yield_id: str
    address: str
    status: WorkflowStatus
    request_hash: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: WorkflowRow) -> WorkflowRecord:
        return cls(
            id=row.id,
            intent=Intent(row.intent),
            yield_id=row.yield_id,
            address=row.address,
            status=WorkflowStatus(row.status),
            request_hash=row.request_hash,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )


class StepRecord(BaseModel):
    id: str
    workflow_id: str
    step_index: int
    network: str
    title: str
    status: StepStatus
    tx_id: str | None = None
    unsigned_tx: Any = None
    structured_tx: Any = None
    annotated_tx: Any = None
    is_message: bool = False
    shield_ok: bool
    shield_reason: str | None = None
    signed_payload: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: StepRow) -> StepRecord:
        return cls(
            id=row.id,
            workflow_id=row.workflow_id,
            step_index=row.step_index,
            network=row.network,
            title=row.title,
            status=StepStatus(row.status),
            tx_id=row.tx_id,
            unsigned_tx=row.unsigned_tx,
            structured_tx=row.structured_tx,
            annotated_tx=row.annotated_tx,
            is_message=row.is_message,
            shield_ok=row.shield_ok,
            shield_reason=row.shield_reason,
            signed_payload=row.signed_payload,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )


class AuditEventRecord(BaseModel):
    id: str
    workflow_id: str
    type: AuditEventType
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_row(cls, row: AuditEventRow) -> AuditEventRecord:
        return cls(
            id=row.id,
            workflow_id=row.workflow_id,
            type=AuditEventType(row.type),
            data=dict(row.data or {}),
            created_at=_as_utc(row.created_at),
        )


class WorkflowWithSteps(BaseModel):
    """A workflow and its steps ordered by ``step_index``."""

    workflow: WorkflowRecord
    steps: list[StepRecord]

    def find_step(self, step_id: str) -> StepRecord | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None
