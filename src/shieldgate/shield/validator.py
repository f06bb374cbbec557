"""Transaction risk checks ("shield").

The workflow service treats a validator as a black box returning pass/fail plus
a reason. Validators never raise: any internal fault is logged and reported as
a failed result so workflow creation always completes deterministically.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from shieldgate.gateway.config import ShieldGateSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidationRequest:
    unsigned_transaction: Any
    yield_id: str
    user_address: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    reason: str | None = None
    details: dict[str, object] | None = None

    @classmethod
    def passed(cls) -> ValidationResult:
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str, details: dict[str, object] | None = None) -> ValidationResult:
        return cls(ok=False, reason=reason, details=details)


class TransactionValidator(ABC):
    """Validation gate for a single unsigned transaction."""

    def validate(self, request: ValidationRequest) -> ValidationResult:
        try:
            return self._check(request)
        except Exception as e:
            logger.error(
                "Shield validation error",
                exc_info=True,
                extra={"yield_id": request.yield_id, "error": str(e)},
            )
            return ValidationResult.failed(f"Shield error: {e}")

    @abstractmethod
    def _check(self, request: ValidationRequest) -> ValidationResult:
        pass


class SkipValidator(TransactionValidator):
    """Approve everything. Selected with SHIELD_MODE=skip."""

    def _check(self, request: ValidationRequest) -> ValidationResult:
        return ValidationResult.passed()


class PolicyValidator(TransactionValidator):
    """Structural EVM checks plus optional chain and yield allowlists.

    Rules run in order and the first failure wins:
    1. the unsigned transaction is a JSON object (or a string holding one)
    2. the yield is supported (when an allowlist is configured)
    3. ``to`` is present
    4. ``from``, when present, matches the user address
    5. ``chainId`` is allowed (when an allowlist is configured)
    """

    def __init__(
        self,
        *,
        allowed_chain_ids: set[int] | None = None,
        supported_yields: set[str] | None = None,
    ) -> None:
        self._allowed_chain_ids = allowed_chain_ids or set()
        self._supported_yields = supported_yields or set()

    def is_supported(self, yield_id: str) -> bool:
        return not self._supported_yields or yield_id in self._supported_yields

    def _check(self, request: ValidationRequest) -> ValidationResult:
        tx = _parse_transaction(request.unsigned_transaction)
        if tx is None:
            return ValidationResult.failed("Unsigned transaction is not a valid object")

        if not self.is_supported(request.yield_id):
            return ValidationResult.failed(
                f"Yield {request.yield_id} is not supported by Shield",
                {"yieldId": request.yield_id},
            )

        to = tx.get("to")
        if not isinstance(to, str) or not to.strip():
            return ValidationResult.failed("Transaction is missing a destination address")

        sender = tx.get("from")
        if sender is not None and str(sender).lower() != request.user_address.lower():
            return ValidationResult.failed(
                "Transaction sender does not match user address",
                {"from": sender, "userAddress": request.user_address},
            )

        if self._allowed_chain_ids:
            chain_id = _as_int(tx.get("chainId"))
            if chain_id not in self._allowed_chain_ids:
                return ValidationResult.failed(
                    f"Chain {tx.get('chainId')} is not allowed",
                    {"chainId": tx.get("chainId")},
                )

        return ValidationResult.passed()


def _parse_transaction(value: Any) -> dict[str, Any] | None:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if isinstance(value, dict):
        return value
    return None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            return None
    return None


def create_validator(settings: ShieldGateSettings) -> TransactionValidator:
    """Pick the validator implementation for the configured shield mode."""

    if settings.shield_mode == "skip":
        logger.info("Shield running in skip mode")
        return SkipValidator()

    logger.info("Shield running in enforce mode")
    return PolicyValidator(
        allowed_chain_ids=settings.parsed_allowed_chain_ids(),
        supported_yields=settings.parsed_supported_yields(),
    )
