"""Gateway core: configuration, persistence, idempotency and the workflow service.

Business rules live here; HTTP concerns live in `shieldgate.server`.
"""
