"""Abstract base class for action sources.

An action source turns an intent plus parameters into an ordered list of
unsigned candidate transactions. The workflow service depends only on this
interface; which concrete source is used is decided once at startup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from shieldgate.gateway.workflow.state_machine import Intent


@dataclass(frozen=True, slots=True)
class ActionRequest:
    """Fully materialised inputs for an action. Keep this explicit."""

    intent: Intent
    yield_id: str
    address: str
    arguments: dict[str, Any] = field(default_factory=dict)
    action: str | None = None
    passthrough: dict[str, Any] | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "intent": self.intent.value,
            "yieldId": self.yield_id,
            "address": self.address,
            "arguments": self.arguments,
        }
        if self.action is not None:
            out["action"] = self.action
        if self.passthrough is not None:
            out["passthrough"] = self.passthrough
        return out


@dataclass(frozen=True, slots=True)
class TransactionCandidate:
    step_index: int
    network: str
    title: str
    unsigned_transaction: Any
    id: str | None = None
    structured_transaction: Any = None
    annotated_transaction: Any = None
    is_message: bool = False


@dataclass(frozen=True, slots=True)
class ActionResult:
    yield_id: str
    transactions: list[TransactionCandidate]


class ActionProvider(ABC):
    """Pluggable source of candidate transactions (fixture or live upstream)."""

    @abstractmethod
    def create_action(self, request: ActionRequest) -> ActionResult:
        """Decompose ``request`` into ordered candidate transactions.

        Args:
            request: The intent and its parameters.

        Returns:
            The candidates in execution order.

        Raises:
            UpstreamError: Or one of its subclasses when the source fails.
        """
        pass
