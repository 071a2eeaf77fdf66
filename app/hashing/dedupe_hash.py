"""
app/hashing/dedupe_hash.py

Deterministic canonical serialization and SHA-256 digests for duplicate
detection. Not a security primitive.
"""

from __future__ import annotations

import hashlib
import json
import math
import uuid
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any


class CanonicalHashError(TypeError):
    """
    Raised when a value has no canonical form.
    """


def canonical_stringify(value: Any) -> str:
    """
    Serialize ``value`` so that logically equal structures produce equal text.

    Mapping keys are sorted; sequence order is preserved. Primitives use their
    JSON literal form, with integral floats written without a fraction and
    non-finite floats written as ``null``.
    """

    if value is None or isinstance(value, (bool, str)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _canonical_float(value)
    if isinstance(value, Decimal):
        return _canonical_float(float(value))
    if isinstance(value, (datetime, date)):
        return json.dumps(value.isoformat())
    if isinstance(value, uuid.UUID):
        return json.dumps(str(value))
    if isinstance(value, Mapping):
        pairs = sorted(
            ((str(key), item) for key, item in value.items()),
            key=lambda pair: pair[0],
        )
        body = ",".join(
            f"{json.dumps(key, ensure_ascii=False)}:{canonical_stringify(item)}"
            for key, item in pairs
        )
        return "{" + body + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(canonical_stringify(item) for item in value) + "]"
    raise CanonicalHashError(f"Cannot canonicalize value of type {type(value).__name__}.")


def _canonical_float(value: float) -> str:
    if not math.isfinite(value):
        return "null"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def compute_dedupe_hash(
    *,
    org_id: str | uuid.UUID,
    connection_id: str | uuid.UUID | None,
    event_type: str,
    payload: Any,
) -> str:
    """
    Dedup key for one raw event within an organization.
    """

    base = canonical_stringify(
        {
            "orgId": str(org_id),
            "connectionId": None if connection_id is None else str(connection_id),
            "eventType": event_type,
            "payload": payload,
        }
    )
    return sha256_hex(base)
