"""Idempotent execution of state-mutating operations.

Every mutating entry point runs through :class:`IdempotencyGuard`. A caller
supplies coordinates ``(scope, key)``; the first result to be durably recorded
for those coordinates is the only result any caller will ever observe for them.

Guarantees:
- a repeated request with the same body returns the stored result without
  re-running the operation;
- a repeated key with a different body fails with ``IdempotencyConflict``;
- two racing callers may both run the operation (at-least-once execution), but
  the unique ``(scope, key)`` constraint lets exactly one record win and the
  loser re-reads and converges on the winner's result.

The operation's own writes are committed independently of the guard's record,
which is why a lost insert race must re-read rather than simply fail.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from shieldgate.gateway.errors import IdempotencyConflict, MissingIdempotencyKey
from shieldgate.gateway.hashing import fingerprint
from shieldgate.gateway.storage.database import Database
from shieldgate.gateway.storage.models import IdempotencyRecordRow

logger = logging.getLogger(__name__)


def make_scope(method: str, path: str) -> str:
    return f"{method.upper()}:{path}"


@dataclass(frozen=True, slots=True)
class IdempotencyRecord:
    scope: str
    key: str
    request_hash: str
    response_body: Any
    created_at: datetime


class IdempotencyRecordExists(Exception):
    """Raised by the store when ``(scope, key)`` is already taken."""

    def __init__(self, scope: str, key: str) -> None:
        super().__init__(f"Idempotency record already exists for {scope} key={key}")
        self.scope = scope
        self.key = key


class IdempotencyStore:
    """Insert-once table of ``(scope, key) -> (request_hash, response_body)``."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, scope: str, key: str) -> IdempotencyRecord | None:
        with self._db.session() as db:
            row = db.execute(
                select(IdempotencyRecordRow).where(
                    IdempotencyRecordRow.scope == scope, IdempotencyRecordRow.key == key
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            return IdempotencyRecord(
                scope=row.scope,
                key=row.key,
                request_hash=row.request_hash,
                response_body=row.response_body,
                created_at=row.created_at,
            )

    def insert(self, *, scope: str, key: str, request_hash: str, response_body: Any) -> None:
        try:
            with self._db.session() as db:
                db.add(
                    IdempotencyRecordRow(
                        scope=scope,
                        key=key,
                        request_hash=request_hash,
                        response_body=response_body,
                    )
                )
                db.flush()
        except IntegrityError as e:
            raise IdempotencyRecordExists(scope, key) from e

    def count(self, scope: str, key: str) -> int:
        with self._db.session() as db:
            rows = db.execute(
                select(IdempotencyRecordRow.id).where(
                    IdempotencyRecordRow.scope == scope, IdempotencyRecordRow.key == key
                )
            ).all()
            return len(rows)


class IdempotencyGuard:
    """Wrap an operation so duplicate requests converge on one outcome."""

    def __init__(self, store: IdempotencyStore) -> None:
        self._store = store

    def execute(
        self,
        *,
        scope: str,
        key: str | None,
        body: Any,
        operation: Callable[[], Any],
    ) -> Any:
        """Run ``operation`` at most once per observable outcome for ``(scope, key)``.

        Args:
            scope: Logical operation coordinates, typically ``"{METHOD}:{path}"``.
            key: Caller-supplied idempotency key. Required.
            body: Request body used to fingerprint the request.
            operation: Zero-argument callable producing a JSON-compatible result.

        Returns:
            The operation's result, or the previously stored result for this key.

        Raises:
            MissingIdempotencyKey: If ``key`` is absent or blank.
            IdempotencyConflict: If ``key`` was already used with a different body.
        """

        if key is None or not key.strip():
            raise MissingIdempotencyKey()

        request_hash = fingerprint(body)

        existing = self._store.get(scope, key)
        if existing is not None:
            logger.info("Idempotency hit", extra={"scope": scope, "idempotency_key": key})
            return self._resolve(existing, request_hash)

        result = operation()

        try:
            self._store.insert(
                scope=scope, key=key, request_hash=request_hash, response_body=result
            )
        except IdempotencyRecordExists:
            raced = self._store.get(scope, key)
            if raced is None:
                raise
            logger.info(
                "Idempotency race lost; returning stored result",
                extra={"scope": scope, "idempotency_key": key},
            )
            return self._resolve(raced, request_hash)

        return result

    @staticmethod
    def _resolve(record: IdempotencyRecord, request_hash: str) -> Any:
        if record.request_hash != request_hash:
            raise IdempotencyConflict()
        return record.response_body
