"""Workflow orchestration: create, read and sign.

Creation asks the action source for candidate transactions, runs every one of
them through the shield, and persists the workflow, its steps and the initial
audit events in a single transaction. A workflow with any failing step is still
persisted (so it can be inspected) before the failure is reported.
"""

from __future__ import annotations

import logging

from shieldgate.actions.provider import ActionProvider, ActionRequest, TransactionCandidate
from shieldgate.gateway.errors import NotFound, ShieldValidationFailed, UpstreamError
from shieldgate.gateway.hashing import fingerprint
from shieldgate.gateway.workflow import events
from shieldgate.gateway.workflow.records import (
    AuditEventRecord,
    StepRecord,
    WorkflowWithSteps,
)
from shieldgate.gateway.workflow.state_machine import (
    WorkflowStatus,
    check_signable,
    initial_step_status,
    overall_status,
)
from shieldgate.gateway.workflow.store import NewStep, WorkflowStore
from shieldgate.shield.validator import TransactionValidator, ValidationRequest
from shieldgate.signer.local_signer import Signer

logger = logging.getLogger(__name__)


def _check_step_indexes(transactions: list[TransactionCandidate]) -> None:
    indexes = sorted(tx.step_index for tx in transactions)
    if indexes != list(range(len(transactions))):
        raise UpstreamError(
            "Upstream returned transactions with non-contiguous step indexes",
            details={"stepIndexes": [tx.step_index for tx in transactions]},
        )


class WorkflowService:
    def __init__(
        self,
        *,
        store: WorkflowStore,
        action_provider: ActionProvider,
        validator: TransactionValidator,
    ) -> None:
        self._store = store
        self._actions = action_provider
        self._validator = validator

    def create_workflow(self, request: ActionRequest) -> WorkflowWithSteps:
        """Build, validate and persist a workflow for ``request``.

        Raises:
            UpstreamError: (or a subclass) when the action source fails; nothing is persisted.
            ShieldValidationFailed: after persisting, when any step failed validation.
        """

        request_hash = fingerprint(request.to_json())
        action = self._actions.create_action(request)
        transactions = action.transactions
        _check_step_indexes(transactions)

        new_steps: list[NewStep] = []
        failures: list[dict[str, object]] = []
        for tx in transactions:
            result = self._validator.validate(
                ValidationRequest(
                    unsigned_transaction=tx.unsigned_transaction,
                    yield_id=request.yield_id,
                    user_address=request.address,
                    args=request.arguments,
                )
            )
            if not result.ok:
                failures.append({"stepIndex": tx.step_index, "reason": result.reason})
            new_steps.append(
                NewStep(
                    step_index=tx.step_index,
                    network=tx.network,
                    title=tx.title,
                    status=initial_step_status(result.ok),
                    shield_ok=result.ok,
                    shield_reason=result.reason,
                    unsigned_tx=tx.unsigned_transaction,
                    tx_id=tx.id,
                    structured_tx=tx.structured_transaction,
                    annotated_tx=tx.annotated_transaction,
                    is_message=tx.is_message,
                )
            )

        status = overall_status(step.shield_ok for step in new_steps)

        audit = [
            events.workflow_created(
                intent=request.intent.value,
                yield_id=request.yield_id,
                address=request.address,
                step_count=len(new_steps),
            )
        ]
        if status is WorkflowStatus.VALIDATED:
            audit.append(
                events.yield_action_created(
                    yield_id=action.yield_id,
                    step_count=len(new_steps),
                    tx_ids=[tx.id for tx in transactions if tx.id is not None],
                )
            )
        else:
            audit.append(events.shield_failed(failures=failures))

        created = self._store.create(
            intent=request.intent,
            yield_id=request.yield_id,
            address=request.address,
            status=status,
            request_hash=request_hash,
            steps=new_steps,
            events=audit,
        )

        logger.info(
            "Workflow created",
            extra={
                "workflow_id": created.workflow.id,
                "intent": request.intent.value,
                "yield_id": request.yield_id,
                "status": status.value,
                "step_count": len(new_steps),
            },
        )

        if status is WorkflowStatus.FAILED:
            raise ShieldValidationFailed(workflow_id=created.workflow.id, failures=failures)
        return created

    def get_workflow(
        self, workflow_id: str, *, include_signed_payload: bool = False
    ) -> WorkflowWithSteps:
        found = self._store.get(workflow_id)
        if found is None:
            raise NotFound(f"Workflow {workflow_id} not found")
        if include_signed_payload:
            return found
        return WorkflowWithSteps(
            workflow=found.workflow,
            steps=[step.model_copy(update={"signed_payload": None}) for step in found.steps],
        )

    def sign_step(self, workflow_id: str, step_id: str, signer: Signer) -> StepRecord:
        """Sign one step of a validated workflow.

        Signing an already signed step returns it unchanged without invoking the signer.
        """

        found = self._store.get(workflow_id)
        if found is None:
            raise NotFound(f"Workflow {workflow_id} not found")
        step = found.find_step(step_id)
        if step is None:
            raise NotFound(f"Step {step_id} not found in workflow {workflow_id}")

        already_signed = check_signable(
            workflow_status=found.workflow.status,
            step_status=step.status,
            shield_ok=step.shield_ok,
            is_message=step.is_message,
        )
        if already_signed:
            logger.info(
                "Step already signed",
                extra={"workflow_id": workflow_id, "step_id": step_id},
            )
            return step

        signed_payload = signer.sign(step.unsigned_tx, found.workflow.address)

        outcome = self._store.mark_step_signed(
            workflow_id=workflow_id,
            step_id=step_id,
            signed_payload=signed_payload,
            event=events.step_signed(step_id=step_id, step_index=step.step_index),
        )
        logger.info(
            "Step signed",
            extra={
                "workflow_id": workflow_id,
                "step_id": step_id,
                "step_index": step.step_index,
                "applied": outcome.applied,
            },
        )
        return outcome.step

    def list_events(self, workflow_id: str) -> list[AuditEventRecord]:
        if self._store.get(workflow_id) is None:
            raise NotFound(f"Workflow {workflow_id} not found")
        return self._store.list_events(workflow_id)
