"""Stable fingerprints for structured request bodies."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def stable_json(value: Any) -> str:
    """Serialize ``value`` with object keys sorted at every depth.

    List order is significant and preserved.
    """

    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def fingerprint(value: Any) -> str:
    """Deterministic SHA-256 of the canonical JSON form of ``value``."""

    return sha256_hex(stable_json(value))
