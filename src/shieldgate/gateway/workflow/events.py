from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AuditEventType(str, Enum):
    WORKFLOW_CREATED = "workflow_created"
    YIELD_ACTION_CREATED = "yield_action_created"
    SHIELD_FAILED = "shield_failed"
    STEP_SIGNED = "step_signed"


@dataclass(frozen=True, slots=True)
class AuditEvent:
    """An entry appended to a workflow's audit trail.

    Events are written in the same transaction as the state change they record
    and are never mutated afterwards.
    """

    type: AuditEventType
    data: dict[str, object]


def workflow_created(
    *, intent: str, yield_id: str, address: str, step_count: int
) -> AuditEvent:
    return AuditEvent(
        type=AuditEventType.WORKFLOW_CREATED,
        data={
            "intent": intent,
            "yieldId": yield_id,
            "address": address,
            "stepCount": step_count,
        },
    )


def yield_action_created(*, yield_id: str, step_count: int, tx_ids: list[str]) -> AuditEvent:
    return AuditEvent(
        type=AuditEventType.YIELD_ACTION_CREATED,
        data={"yieldId": yield_id, "stepCount": step_count, "txIds": tx_ids},
    )


def shield_failed(*, failures: list[dict[str, object]]) -> AuditEvent:
    return AuditEvent(type=AuditEventType.SHIELD_FAILED, data={"failures": failures})


def step_signed(*, step_id: str, step_index: int) -> AuditEvent:
    return AuditEvent(
        type=AuditEventType.STEP_SIGNED, data={"stepId": step_id, "stepIndex": step_index}
    )
