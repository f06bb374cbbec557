"""ShieldGate.

An idempotent gateway for yield intents:
- turn an intent (enter / exit / manage) into ordered unsigned transactions
- validate every transaction before it can be signed
- sign steps one at a time with a persisted audit trail
"""

__version__ = "0.1.0"

from shieldgate.gateway.config import ShieldGateSettings

__all__ = ["__version__", "ShieldGateSettings"]
