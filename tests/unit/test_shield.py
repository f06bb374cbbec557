from __future__ import annotations

from shieldgate.gateway.config import ShieldGateSettings
from shieldgate.shield.validator import (
    PolicyValidator,
    SkipValidator,
    TransactionValidator,
    ValidationRequest,
    ValidationResult,
    create_validator,
)

USER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
TX = {"to": "0x1111111111111111111111111111111111111111", "data": "0x", "chainId": 11155111}


def _request(tx: object = TX, yield_id: str = "sepolia-vault") -> ValidationRequest:
    return ValidationRequest(unsigned_transaction=tx, yield_id=yield_id, user_address=USER)


def test_skip_validator_passes_anything() -> None:
    assert SkipValidator().validate(_request("garbage")).ok is True


def test_policy_accepts_well_formed_transaction() -> None:
    result = PolicyValidator().validate(_request())

    assert result == ValidationResult.passed()


def test_policy_accepts_json_string_with_matching_sender() -> None:
    tx = '{"to": "0x1111111111111111111111111111111111111111", "from": "%s"}' % USER.lower()

    assert PolicyValidator().validate(_request(tx)).ok is True


def test_policy_rejects_unparseable_transaction() -> None:
    result = PolicyValidator().validate(_request("{not json"))

    assert result.ok is False
    assert result.reason == "Unsigned transaction is not a valid object"


def test_policy_rejects_unsupported_yield() -> None:
    validator = PolicyValidator(supported_yields={"other-vault"})

    result = validator.validate(_request())

    assert result.ok is False
    assert "not supported" in (result.reason or "")
    assert validator.is_supported("other-vault")


def test_policy_rejects_missing_destination() -> None:
    result = PolicyValidator().validate(_request({"data": "0x"}))

    assert result.ok is False
    assert result.reason == "Transaction is missing a destination address"


def test_policy_rejects_foreign_sender() -> None:
    result = PolicyValidator().validate(_request({**TX, "from": "0x" + "9" * 40}))

    assert result.ok is False
    assert result.details == {"from": "0x" + "9" * 40, "userAddress": USER}


def test_policy_enforces_chain_allowlist() -> None:
    validator = PolicyValidator(allowed_chain_ids={1})

    assert validator.validate(_request()).ok is False
    assert validator.validate(_request({**TX, "chainId": "0x1"})).ok is True


def test_internal_fault_becomes_failed_result() -> None:
    class Exploding(TransactionValidator):
        def _check(self, request: ValidationRequest) -> ValidationResult:
            raise RuntimeError("rules unavailable")

    result = Exploding().validate(_request())

    assert result.ok is False
    assert result.reason == "Shield error: rules unavailable"


def test_create_validator_follows_shield_mode(settings: ShieldGateSettings) -> None:
    assert isinstance(create_validator(settings), SkipValidator)

    enforced = settings.model_copy(
        update={"shield_mode": "enforce", "shield_allowed_chain_ids": "1, 11155111"}
    )
    validator = create_validator(enforced)
    assert isinstance(validator, PolicyValidator)
    assert validator.validate(_request()).ok is True
    assert validator.validate(_request({**TX, "chainId": 10})).ok is False
