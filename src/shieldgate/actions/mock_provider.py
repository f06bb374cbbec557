"""Deterministic action source for local development and tests."""

from __future__ import annotations

import logging

from shieldgate.actions.provider import (
    ActionProvider,
    ActionRequest,
    ActionResult,
    TransactionCandidate,
)

logger = logging.getLogger(__name__)

MOCK_NETWORK = "eip155:11155111"
MOCK_CHAIN_ID = 11155111


class MockActionProvider(ActionProvider):
    """Return a fixed approve + enter pair regardless of intent."""

    def create_action(self, request: ActionRequest) -> ActionResult:
        logger.debug(
            "Serving mock action",
            extra={"intent": request.intent.value, "yield_id": request.yield_id},
        )
        return ActionResult(
            yield_id=request.yield_id,
            transactions=[
                TransactionCandidate(
                    step_index=0,
                    network=MOCK_NETWORK,
                    title="approve",
                    unsigned_transaction={
                        "to": "0x1111111111111111111111111111111111111111",
                        "data": (
                            "0x095ea7b3"
                            "0000000000000000000000002222222222222222222222222222222222222222"
                            "ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"
                        ),
                        "value": "0",
                        "chainId": MOCK_CHAIN_ID,
                        "type": 2,
                        "maxFeePerGas": "30000000000",
                        "maxPriorityFeePerGas": "1000000000",
                        "gasLimit": "60000",
                        "nonce": 0,
                    },
                ),
                TransactionCandidate(
                    step_index=1,
                    network=MOCK_NETWORK,
                    title="enter",
                    unsigned_transaction={
                        "to": "0x2222222222222222222222222222222222222222",
                        "data": (
                            "0xa59f3e0c"
                            "0000000000000000000000000000000000000000000000000000000000000001"
                        ),
                        "value": "0",
                        "chainId": MOCK_CHAIN_ID,
                        "type": 2,
                        "maxFeePerGas": "30000000000",
                        "maxPriorityFeePerGas": "1000000000",
                        "gasLimit": "120000",
                        "nonce": 1,
                    },
                ),
            ],
        )
