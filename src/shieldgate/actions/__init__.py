"""Action source package initialization."""

from shieldgate.actions.factory import ActionProviderFactory
from shieldgate.actions.mock_provider import MockActionProvider
from shieldgate.actions.provider import (
    ActionProvider,
    ActionRequest,
    ActionResult,
    TransactionCandidate,
)
from shieldgate.actions.yield_provider import YieldActionProvider

__all__ = [
    "ActionProvider",
    "ActionProviderFactory",
    "ActionRequest",
    "ActionResult",
    "MockActionProvider",
    "TransactionCandidate",
    "YieldActionProvider",
]
