"""Shield: the validation gate for candidate transactions."""

from shieldgate.shield.validator import (
    PolicyValidator,
    SkipValidator,
    TransactionValidator,
    ValidationRequest,
    ValidationResult,
    create_validator,
)

__all__ = [
    "PolicyValidator",
    "SkipValidator",
    "TransactionValidator",
    "ValidationRequest",
    "ValidationResult",
    "create_validator",
]
