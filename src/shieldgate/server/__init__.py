"""FastAPI server adapter for ShieldGate.

Design intent:
- Keep business logic in `shieldgate.gateway.*`
- Keep server-specific concerns (routing, auth, trace ids, error envelopes) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from shieldgate.server.app import create_app
