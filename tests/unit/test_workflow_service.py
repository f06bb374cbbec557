"""Unit tests for workflow creation, retrieval and signing."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from shieldgate.actions.mock_provider import MockActionProvider
from shieldgate.actions.provider import (
    ActionProvider,
    ActionRequest,
    ActionResult,
    TransactionCandidate,
)
from shieldgate.gateway.errors import (
    AddressMismatch,
    MessageNotSupported,
    NotFound,
    ShieldValidationFailed,
    UpstreamError,
    UpstreamNotFound,
    WorkflowFailed,
)
from shieldgate.gateway.hashing import fingerprint
from shieldgate.gateway.workflow.events import AuditEventType, step_signed
from shieldgate.gateway.workflow.service import WorkflowService
from shieldgate.gateway.workflow.state_machine import Intent, StepStatus, WorkflowStatus
from shieldgate.gateway.workflow.store import WorkflowStore
from shieldgate.shield.validator import (
    SkipValidator,
    TransactionValidator,
    ValidationRequest,
    ValidationResult,
)
from shieldgate.signer.local_signer import LocalSigner, Signer

SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


def _request(address: str = SIGNER_ADDRESS) -> ActionRequest:
    return ActionRequest(
        intent=Intent.ENTER,
        yield_id="ethereum-sepolia-usdc-vault",
        address=address,
        arguments={"amount": "1"},
    )


def _candidate(index: int, **kwargs) -> TransactionCandidate:
    return TransactionCandidate(
        step_index=index,
        network="eip155:11155111",
        title=f"step-{index}",
        unsigned_transaction={"to": "0x" + "1" * 40, "data": "0x00", "chainId": 11155111},
        **kwargs,
    )


def _service(
    store: WorkflowStore,
    *,
    candidates: list[TransactionCandidate],
    validator: TransactionValidator | None = None,
) -> WorkflowService:
    provider = Mock(spec=ActionProvider)
    provider.create_action.return_value = ActionResult(
        yield_id="ethereum-sepolia-usdc-vault", transactions=candidates
    )
    return WorkflowService(
        store=store, action_provider=provider, validator=validator or SkipValidator()
    )


def test_create_validated_workflow(service: WorkflowService, workflow_store: WorkflowStore) -> None:
    created = service.create_workflow(_request())

    assert created.workflow.status is WorkflowStatus.VALIDATED
    assert created.workflow.intent is Intent.ENTER
    assert created.workflow.request_hash == fingerprint(_request().to_json())
    assert [s.step_index for s in created.steps] == [0, 1]
    assert [s.title for s in created.steps] == ["approve", "enter"]
    assert all(s.status is StepStatus.READY and s.shield_ok for s in created.steps)
    assert all(s.signed_payload is None for s in created.steps)

    events = workflow_store.list_events(created.workflow.id)
    assert [e.type for e in events] == [
        AuditEventType.WORKFLOW_CREATED,
        AuditEventType.YIELD_ACTION_CREATED,
    ]
    assert events[0].data["stepCount"] == 2


def test_steps_are_persisted_in_index_order(workflow_store: WorkflowStore) -> None:
    service = _service(workflow_store, candidates=[_candidate(1), _candidate(0, id="tx-0")])

    created = service.create_workflow(_request())
    loaded = service.get_workflow(created.workflow.id)

    assert [s.step_index for s in loaded.steps] == [0, 1]
    assert loaded.steps[0].tx_id == "tx-0"
    events = workflow_store.list_events(created.workflow.id)
    assert events[1].data["txIds"] == ["tx-0"]


def test_steps_are_validated_in_returned_order(workflow_store: WorkflowStore) -> None:
    seen: list[str] = []

    def reject(request: ValidationRequest) -> ValidationResult:
        seen.append(request.unsigned_transaction["data"])
        return ValidationResult.failed("nope")

    validator = Mock(spec=TransactionValidator)
    validator.validate.side_effect = reject
    first = _candidate(1, id="tx-1")
    first.unsigned_transaction["data"] = "0x01"
    second = _candidate(0, id="tx-0")
    service = _service(workflow_store, candidates=[first, second], validator=validator)

    with pytest.raises(ShieldValidationFailed) as exc_info:
        service.create_workflow(_request())

    assert seen == ["0x01", "0x00"]
    assert [f["stepIndex"] for f in exc_info.value.failures] == [1, 0]
    stored = service.get_workflow(exc_info.value.workflow_id)
    assert [s.step_index for s in stored.steps] == [0, 1]


def test_shield_failure_persists_then_raises(workflow_store: WorkflowStore) -> None:
    validator = Mock(spec=TransactionValidator)
    validator.validate.side_effect = [
        ValidationResult.passed(),
        ValidationResult.failed("Chain 1 is not allowed"),
    ]
    service = _service(
        workflow_store, candidates=[_candidate(0), _candidate(1)], validator=validator
    )

    with pytest.raises(ShieldValidationFailed) as exc_info:
        service.create_workflow(_request())

    err = exc_info.value
    assert err.failures == [{"stepIndex": 1, "reason": "Chain 1 is not allowed"}]
    assert err.details == {"workflowId": err.workflow_id, "failures": err.failures}

    stored = service.get_workflow(err.workflow_id)
    assert stored.workflow.status is WorkflowStatus.FAILED
    assert stored.steps[0].status is StepStatus.READY
    assert stored.steps[1].status is StepStatus.BLOCKED
    assert stored.steps[1].shield_reason == "Chain 1 is not allowed"

    events = workflow_store.list_events(err.workflow_id)
    assert [e.type for e in events] == [
        AuditEventType.WORKFLOW_CREATED,
        AuditEventType.SHIELD_FAILED,
    ]
    assert events[1].data == {"failures": err.failures}


def test_every_step_is_validated_even_after_a_failure(workflow_store: WorkflowStore) -> None:
    validator = Mock(spec=TransactionValidator)
    validator.validate.return_value = ValidationResult.failed("nope")
    service = _service(
        workflow_store,
        candidates=[_candidate(0), _candidate(1), _candidate(2)],
        validator=validator,
    )

    with pytest.raises(ShieldValidationFailed) as exc_info:
        service.create_workflow(_request())

    assert validator.validate.call_count == 3
    assert [f["stepIndex"] for f in exc_info.value.failures] == [0, 1, 2]


def test_upstream_failure_persists_nothing(workflow_store: WorkflowStore) -> None:
    provider = Mock(spec=ActionProvider)
    provider.create_action.side_effect = UpstreamNotFound("Yield not found")
    service = WorkflowService(
        store=workflow_store, action_provider=provider, validator=SkipValidator()
    )

    with pytest.raises(UpstreamNotFound):
        service.create_workflow(_request())
    assert workflow_store.count_workflows() == 0


def test_non_contiguous_step_indexes_are_rejected(workflow_store: WorkflowStore) -> None:
    service = _service(workflow_store, candidates=[_candidate(0), _candidate(2)])

    with pytest.raises(UpstreamError):
        service.create_workflow(_request())
    assert workflow_store.count_workflows() == 0


def test_empty_action_is_validated_with_no_steps(workflow_store: WorkflowStore) -> None:
    service = _service(workflow_store, candidates=[])

    created = service.create_workflow(_request())

    assert created.workflow.status is WorkflowStatus.VALIDATED
    assert created.steps == []


def test_get_unknown_workflow_raises(service: WorkflowService) -> None:
    with pytest.raises(NotFound):
        service.get_workflow("does-not-exist")


def test_sign_step_once_and_return_stored_step_afterwards(
    service: WorkflowService, workflow_store: WorkflowStore
) -> None:
    created = service.create_workflow(_request())
    step = created.steps[0]
    signer = Mock(spec=Signer)
    signer.sign.return_value = "0xsigned"

    first = service.sign_step(created.workflow.id, step.id, signer)
    second = service.sign_step(created.workflow.id, step.id, signer)

    assert first.status is StepStatus.SIGNED
    assert first.signed_payload == "0xsigned"
    assert second.signed_payload == "0xsigned"
    signer.sign.assert_called_once_with(step.unsigned_tx, SIGNER_ADDRESS)

    events = workflow_store.list_events(created.workflow.id)
    assert [e.type for e in events].count(AuditEventType.STEP_SIGNED) == 1
    assert events[-1].data == {"stepId": step.id, "stepIndex": 0}

    # Workflow status is decided at creation and never revisited.
    assert service.get_workflow(created.workflow.id).workflow.status is WorkflowStatus.VALIDATED


def test_signed_payload_is_hidden_unless_requested(
    service: WorkflowService, signer: LocalSigner
) -> None:
    created = service.create_workflow(_request())
    service.sign_step(created.workflow.id, created.steps[0].id, signer)

    default = service.get_workflow(created.workflow.id)
    assert all(s.signed_payload is None for s in default.steps)

    full = service.get_workflow(created.workflow.id, include_signed_payload=True)
    assert full.steps[0].signed_payload is not None
    assert full.steps[0].signed_payload.startswith("0x02")
    assert full.steps[1].signed_payload is None


def test_sign_unknown_workflow_or_step(service: WorkflowService, signer: LocalSigner) -> None:
    created = service.create_workflow(_request())

    with pytest.raises(NotFound):
        service.sign_step("missing", created.steps[0].id, signer)
    with pytest.raises(NotFound):
        service.sign_step(created.workflow.id, "missing", signer)


def test_sign_step_of_failed_workflow_is_refused(workflow_store: WorkflowStore) -> None:
    validator = Mock(spec=TransactionValidator)
    validator.validate.side_effect = [ValidationResult.passed(), ValidationResult.failed("bad")]
    service = _service(
        workflow_store, candidates=[_candidate(0), _candidate(1)], validator=validator
    )
    with pytest.raises(ShieldValidationFailed) as exc_info:
        service.create_workflow(_request())

    stored = service.get_workflow(exc_info.value.workflow_id)
    signer = Mock(spec=Signer)
    with pytest.raises(WorkflowFailed):
        service.sign_step(stored.workflow.id, stored.steps[0].id, signer)
    signer.sign.assert_not_called()


def test_message_step_cannot_be_signed(workflow_store: WorkflowStore) -> None:
    service = _service(workflow_store, candidates=[_candidate(0, is_message=True)])
    created = service.create_workflow(_request())

    with pytest.raises(MessageNotSupported):
        service.sign_step(created.workflow.id, created.steps[0].id, Mock(spec=Signer))


def test_signer_failure_leaves_step_ready(
    workflow_store: WorkflowStore, signer: LocalSigner
) -> None:
    service = WorkflowService(
        store=workflow_store, action_provider=MockActionProvider(), validator=SkipValidator()
    )
    created = service.create_workflow(_request(address="0x" + "9" * 40))

    with pytest.raises(AddressMismatch):
        service.sign_step(created.workflow.id, created.steps[0].id, signer)

    stored = service.get_workflow(created.workflow.id)
    assert stored.steps[0].status is StepStatus.READY
    events = workflow_store.list_events(created.workflow.id)
    assert AuditEventType.STEP_SIGNED not in [e.type for e in events]


def test_conditional_sign_write_applies_once(
    service: WorkflowService, workflow_store: WorkflowStore
) -> None:
    created = service.create_workflow(_request())
    step = created.steps[0]
    event = step_signed(step_id=step.id, step_index=step.step_index)

    first = workflow_store.mark_step_signed(
        workflow_id=created.workflow.id, step_id=step.id, signed_payload="0xa", event=event
    )
    second = workflow_store.mark_step_signed(
        workflow_id=created.workflow.id, step_id=step.id, signed_payload="0xb", event=event
    )

    assert first.applied is True
    assert second.applied is False
    assert second.step.signed_payload == "0xa"
    events = workflow_store.list_events(created.workflow.id)
    assert [e.type for e in events].count(AuditEventType.STEP_SIGNED) == 1
