"""Live action source backed by the Yield API."""

from __future__ import annotations

import logging
from typing import Any

from shieldgate.actions.provider import (
    ActionProvider,
    ActionRequest,
    ActionResult,
    TransactionCandidate,
)
from shieldgate.gateway.errors import UpstreamError
from shieldgate.gateway.workflow.state_machine import Intent
from shieldgate.gateway.yield_api.client import YieldClient

logger = logging.getLogger(__name__)


class YieldActionProvider(ActionProvider):
    """Create actions through the Yield API and normalize its transactions."""

    def __init__(self, client: YieldClient) -> None:
        self._client = client

    def create_action(self, request: ActionRequest) -> ActionResult:
        # Fail fast with UPSTREAM_NOT_FOUND for unknown yields.
        self._client.get_yield(request.yield_id)

        if request.intent is Intent.ENTER:
            response = self._client.enter(
                yield_id=request.yield_id, address=request.address, arguments=request.arguments
            )
        elif request.intent is Intent.EXIT:
            response = self._client.exit(
                yield_id=request.yield_id, address=request.address, arguments=request.arguments
            )
        else:
            response = self._client.manage(
                yield_id=request.yield_id,
                address=request.address,
                arguments=request.arguments,
                action=request.action,
                passthrough=request.passthrough,
            )

        if not isinstance(response, dict):
            raise UpstreamError("Upstream returned an unexpected action payload")

        raw_transactions = response.get("transactions") or []
        if not isinstance(raw_transactions, list):
            raise UpstreamError("Upstream returned an unexpected action payload")

        transactions = [_to_candidate(tx, i) for i, tx in enumerate(raw_transactions)]

        logger.info(
            "Yield action created",
            extra={
                "intent": request.intent.value,
                "yield_id": request.yield_id,
                "tx_count": len(transactions),
            },
        )

        yield_id = response.get("yieldId")
        return ActionResult(
            yield_id=yield_id if isinstance(yield_id, str) and yield_id else request.yield_id,
            transactions=transactions,
        )


def _to_candidate(tx: Any, position: int) -> TransactionCandidate:
    if not isinstance(tx, dict):
        raise UpstreamError(f"Upstream transaction at position {position} is not an object")
    step_index = tx.get("stepIndex")
    title = tx.get("title")
    tx_id = tx.get("id")
    return TransactionCandidate(
        id=tx_id if isinstance(tx_id, str) and tx_id else None,
        step_index=step_index if isinstance(step_index, int) else position,
        network=str(tx.get("network") or ""),
        title=title if isinstance(title, str) and title else f"step-{position}",
        unsigned_transaction=tx.get("unsignedTransaction"),
        structured_transaction=tx.get("structuredTransaction"),
        annotated_transaction=tx.get("annotatedTransaction"),
        is_message=bool(tx.get("isMessage", False)),
    )
