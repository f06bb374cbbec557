"""Local EVM signer.

Signs unsigned transactions with a private key held in process memory. The
workflow service only sees the :class:`Signer` interface.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from eth_account import Account
from eth_utils import to_checksum_address

from shieldgate.gateway.errors import (
    AddressMismatch,
    MalformedTransaction,
    SignerNotConfigured,
    SigningFailed,
)

logger = logging.getLogger(__name__)

# Unsigned-transaction field -> eth-account transaction field.
_PASSTHROUGH_FIELDS: dict[str, str] = {
    "to": "to",
    "data": "data",
    "value": "value",
    "nonce": "nonce",
    "gasLimit": "gas",
    "gas": "gas",
    "gasPrice": "gasPrice",
    "maxFeePerGas": "maxFeePerGas",
    "maxPriorityFeePerGas": "maxPriorityFeePerGas",
    "chainId": "chainId",
    "type": "type",
}
_NUMERIC_FIELDS = {
    "value",
    "nonce",
    "gas",
    "gasPrice",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "chainId",
    "type",
}


class Signer(ABC):
    """Signs one unsigned transaction on behalf of an expected address."""

    @abstractmethod
    def sign(self, unsigned_tx: Any, expected_address: str) -> str:
        """Return the signed payload for ``unsigned_tx``.

        Raises:
            SignerNotConfigured, AddressMismatch, MalformedTransaction, SigningFailed.
        """
        pass


class LocalSigner(Signer):
    def __init__(self, private_key: str = "") -> None:
        self._account = Account.from_key(private_key) if private_key.strip() else None
        if self._account is None:
            logger.warning("SIGNER_PRIVATE_KEY not set; signing will fail")
        else:
            logger.info("Signer initialized", extra={"signer_address": self.address})

    @property
    def address(self) -> str:
        return self._account.address.lower() if self._account is not None else ""

    def sign(self, unsigned_tx: Any, expected_address: str) -> str:
        if self._account is None:
            raise SignerNotConfigured()

        if expected_address.lower() != self.address:
            raise AddressMismatch(
                f"Workflow address {expected_address} does not match signer address {self.address}"
            )

        parsed = _parse_unsigned(unsigned_tx)

        if not parsed.get("to") or not parsed.get("data"):
            raise MalformedTransaction("Missing required EVM tx fields (to, data)")

        sender = parsed.get("from")
        if sender and str(sender).lower() != self.address:
            raise AddressMismatch(
                f'Transaction "from" field {sender} does not match signer address'
            )

        tx = _build_transaction(parsed)

        try:
            signed = self._account.sign_transaction(tx)
        except Exception as e:
            logger.error("Signing failed", exc_info=True, extra={"error": str(e)})
            raise SigningFailed() from e

        return "0x" + bytes(signed.raw_transaction).hex()


def _parse_unsigned(unsigned_tx: Any) -> dict[str, Any]:
    if isinstance(unsigned_tx, str):
        try:
            parsed = json.loads(unsigned_tx)
        except json.JSONDecodeError as e:
            raise MalformedTransaction("Failed to parse unsigned transaction") from e
    else:
        parsed = unsigned_tx
    if not isinstance(parsed, dict):
        raise MalformedTransaction("Unsigned transaction is not a valid object or string")
    return parsed


def _to_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise MalformedTransaction(f"Field {name} must be numeric")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError as e:
            raise MalformedTransaction(f"Field {name} must be numeric") from e
    raise MalformedTransaction(f"Field {name} must be numeric")


def _build_transaction(parsed: dict[str, Any]) -> dict[str, Any]:
    tx: dict[str, Any] = {}
    for source, target in _PASSTHROUGH_FIELDS.items():
        value = parsed.get(source)
        if value is None or target in tx:
            continue
        tx[target] = _to_int(target, value) if target in _NUMERIC_FIELDS else value
    try:
        tx["to"] = to_checksum_address(tx["to"])
    except ValueError as e:
        raise MalformedTransaction(f"Invalid destination address {tx['to']}") from e
    return tx
