"""SQLAlchemy-backed persistence."""

from __future__ import annotations

from shieldgate.gateway.storage.database import Database, build_engine
from shieldgate.gateway.storage.models import (
    AuditEventRow,
    Base,
    IdempotencyRecordRow,
    StepRow,
    WorkflowRow,
)

__all__ = [
    "AuditEventRow",
    "Base",
    "Database",
    "IdempotencyRecordRow",
    "StepRow",
    "WorkflowRow",
    "build_engine",
]
