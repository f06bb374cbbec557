from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from shieldgate.gateway.errors import (
    MessageNotSupported,
    ShieldRequired,
    StepNotReady,
    WorkflowFailed,
)


class Intent(str, Enum):
    ENTER = "enter"
    EXIT = "exit"
    MANAGE = "manage"


class WorkflowStatus(str, Enum):
    VALIDATED = "validated"
    FAILED = "failed"


class StepStatus(str, Enum):
    READY = "ready"
    BLOCKED = "blocked"
    SIGNED = "signed"


ALLOWED_STEP_TRANSITIONS: dict[StepStatus, set[StepStatus]] = {
    StepStatus.READY: {StepStatus.SIGNED},
    StepStatus.BLOCKED: set(),
    StepStatus.SIGNED: set(),
}


class IllegalTransitionError(ValueError):
    pass


def initial_step_status(shield_ok: bool) -> StepStatus:
    """A step's starting status depends only on its own shield outcome."""

    return StepStatus.READY if shield_ok else StepStatus.BLOCKED


def overall_status(outcomes: Iterable[bool]) -> WorkflowStatus:
    """Decided once at creation: validated only if every step passed."""

    return WorkflowStatus.VALIDATED if all(outcomes) else WorkflowStatus.FAILED


def transition_step(*, current: StepStatus, to: StepStatus) -> StepStatus:
    allowed = ALLOWED_STEP_TRANSITIONS.get(current, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal step transition: {current.value} -> {to.value}")
    return to


def check_signable(
    *,
    workflow_status: WorkflowStatus,
    step_status: StepStatus,
    shield_ok: bool,
    is_message: bool,
) -> bool:
    """Apply the signing preconditions in their fixed order.

    Returns:
        True if the step is already signed (the caller should return it as-is),
        False if the step may be signed now.

    Raises:
        WorkflowFailed, StepNotReady, ShieldRequired, MessageNotSupported.
    """

    if workflow_status is WorkflowStatus.FAILED:
        raise WorkflowFailed()
    if step_status is StepStatus.SIGNED:
        return True
    if step_status is not StepStatus.READY:
        raise StepNotReady(f'Step is in status "{step_status.value}" and cannot be signed')
    if not shield_ok:
        raise ShieldRequired()
    if is_message:
        raise MessageNotSupported()
    transition_step(current=step_status, to=StepStatus.SIGNED)
    return False
