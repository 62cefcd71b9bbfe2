"""Stable encoding of modification requests for fingerprinting.

Two requests that the commerce API would treat identically encode to the same
bytes: keys are sorted, tuples and lists are both arrays, Decimal amounts drop
trailing zeros, and datetimes are written in UTC. Floats are refused so that no
binary rounding can leak into a fingerprint.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from hashlib import sha256
from typing import Any

from pydantic import BaseModel


class CanonicalError(ValueError):
    pass


def _amount_text(value: Decimal) -> str:
    if not value.is_finite():
        raise CanonicalError(f"amount is not finite: {value}")
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def to_canonical_obj(value: Any) -> Any:
    if isinstance(value, float):
        raise CanonicalError("float amounts are not allowed; send int minor units or Decimal")
    if value is None or isinstance(value, (str, int, bool)):
        return value
    if isinstance(value, Decimal):
        return _amount_text(value)
    if isinstance(value, datetime):
        moment = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return to_canonical_obj(value.model_dump())
    if isinstance(value, Mapping):
        return {str(key): to_canonical_obj(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_canonical_obj(item) for item in value]
    raise CanonicalError(f"cannot encode {type(value).__name__} in a request fingerprint")


def canonical_json(value: Any) -> bytes:
    return json.dumps(to_canonical_obj(value), sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode("utf-8")


def sha256_hex(value: Any) -> str:
    return sha256(canonical_json(value)).hexdigest()


def request_fingerprint(kind: str, order_id: str, payload: Mapping[str, Any]) -> str:
    """Hash of a modification request, scoped to its order and kind."""
    return sha256_hex({"kind": kind, "order_id": order_id, "request": payload})
