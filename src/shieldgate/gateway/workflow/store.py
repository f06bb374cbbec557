"""Relational persistence for the workflow graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update

from shieldgate.gateway.storage.database import Database
from shieldgate.gateway.storage.models import AuditEventRow, StepRow, WorkflowRow
from shieldgate.gateway.workflow.events import AuditEvent
from shieldgate.gateway.workflow.records import (
    AuditEventRecord,
    StepRecord,
    WorkflowRecord,
    WorkflowWithSteps,
)
from shieldgate.gateway.workflow.state_machine import (
    Intent,
    StepStatus,
    WorkflowStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NewStep:
    step_index: int
    network: str
    title: str
    status: StepStatus
    shield_ok: bool
    shield_reason: str | None
    unsigned_tx: Any
    tx_id: str | None = None
    structured_tx: Any = None
    annotated_tx: Any = None
    is_message: bool = False


@dataclass(frozen=True, slots=True)
class SignOutcome:
    step: StepRecord
    # False when another writer had already signed the step.
    applied: bool


class WorkflowStore:
    """Reads and atomic writes of workflows, their steps and audit events."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def create(
        self,
        *,
        intent: Intent,
        yield_id: str,
        address: str,
        status: WorkflowStatus,
        request_hash: str,
        steps: list[NewStep],
        events: list[AuditEvent],
    ) -> WorkflowWithSteps:
        """Insert a workflow with all of its steps and initial events in one transaction."""

        with self._db.session() as db:
            workflow = WorkflowRow(
                intent=intent.value,
                yield_id=yield_id,
                address=address,
                status=status.value,
                request_hash=request_hash,
            )
            for step in steps:
                workflow.steps.append(
                    StepRow(
                        step_index=step.step_index,
                        network=step.network,
                        title=step.title,
                        status=step.status.value,
                        tx_id=step.tx_id,
                        unsigned_tx=step.unsigned_tx,
                        structured_tx=step.structured_tx,
                        annotated_tx=step.annotated_tx,
                        is_message=step.is_message,
                        shield_ok=step.shield_ok,
                        shield_reason=step.shield_reason,
                    )
                )
            for event in events:
                workflow.events.append(AuditEventRow(type=event.type.value, data=event.data))
            db.add(workflow)
            db.flush()

            return WorkflowWithSteps(
                workflow=WorkflowRecord.from_row(workflow),
                steps=[
                    StepRecord.from_row(row)
                    for row in sorted(workflow.steps, key=lambda r: r.step_index)
                ],
            )

    def get(self, workflow_id: str) -> WorkflowWithSteps | None:
        with self._db.session() as db:
            workflow = db.get(WorkflowRow, workflow_id)
            if workflow is None:
                return None
            steps = (
                db.execute(
                    select(StepRow)
                    .where(StepRow.workflow_id == workflow_id)
                    .order_by(StepRow.step_index.asc())
                )
                .scalars()
                .all()
            )
            return WorkflowWithSteps(
                workflow=WorkflowRecord.from_row(workflow),
                steps=[StepRecord.from_row(row) for row in steps],
            )

    def mark_step_signed(
        self,
        *,
        workflow_id: str,
        step_id: str,
        signed_payload: str,
        event: AuditEvent,
    ) -> SignOutcome:
        """Flip a ``ready`` step to ``signed`` and append its audit event atomically.

        The update is conditional on the step still being ``ready``; if a
        concurrent signer got there first nothing is written and the already
        signed step is returned with ``applied=False``.
        """

        with self._db.session() as db:
            result = db.execute(
                update(StepRow)
                .where(
                    StepRow.id == step_id,
                    StepRow.workflow_id == workflow_id,
                    StepRow.status == StepStatus.READY.value,
                )
                .values(
                    signed_payload=signed_payload,
                    status=StepStatus.SIGNED.value,
                    updated_at=datetime.now(tz=UTC),
                )
                .execution_options(synchronize_session=False)
            )
            applied = result.rowcount == 1
            if applied:
                db.add(
                    AuditEventRow(
                        workflow_id=workflow_id, type=event.type.value, data=event.data
                    )
                )
            else:
                logger.info(
                    "Step already left the ready state; skipping write",
                    extra={"workflow_id": workflow_id, "step_id": step_id},
                )
            db.flush()

            row = db.execute(select(StepRow).where(StepRow.id == step_id)).scalar_one()
            return SignOutcome(step=StepRecord.from_row(row), applied=applied)

    def list_events(self, workflow_id: str) -> list[AuditEventRecord]:
        with self._db.session() as db:
            rows = (
                db.execute(
                    select(AuditEventRow)
                    .where(AuditEventRow.workflow_id == workflow_id)
                    .order_by(AuditEventRow.seq.asc())
                )
                .scalars()
                .all()
            )
            return [AuditEventRecord.from_row(row) for row in rows]

    def count_workflows(self) -> int:
        with self._db.session() as db:
            return int(db.execute(select(func.count()).select_from(WorkflowRow)).scalar_one())
