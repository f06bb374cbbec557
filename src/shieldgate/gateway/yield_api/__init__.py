from __future__ import annotations

from shieldgate.gateway.yield_api.client import YieldClient

__all__ = ["YieldClient"]
