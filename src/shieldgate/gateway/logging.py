"""Structured logging configuration.

Uses standard library logging with a JSON formatter. Records emitted while a
request is being handled carry that request's ``trace_id``.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

_RESERVED_LOG_RECORD_ATTRS: set[str] = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"asctime", "message", "taskName"}

_trace_id: ContextVar[str | None] = ContextVar("shieldgate_trace_id", default=None)


def set_trace_id(value: str | None) -> object:
    """Bind ``value`` as the current trace id; returns a token for :func:`reset_trace_id`."""

    return _trace_id.set(value)


def reset_trace_id(token: object) -> None:
    _trace_id.reset(token)  # type: ignore[arg-type]


def current_trace_id() -> str | None:
    return _trace_id.get()


class TraceIdFilter(logging.Filter):
    """Attach the active trace id (if any) to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        trace_id = _trace_id.get()
        if trace_id is not None and not hasattr(record, "trace_id"):
            record.trace_id = trace_id
        return True


class JsonFormatter(logging.Formatter):
    """A minimal JSON formatter for logging records."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Configure root logging with structured JSON output."""

    root = logging.getLogger()

    # Remove any existing handlers to avoid duplicate logs when re-configuring.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(TraceIdFilter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    for noisy in ("sqlalchemy", "urllib3"):
        logging.getLogger(noisy).setLevel(max(root.level, logging.INFO))
