# canonical.py
# Deterministic serialization used as the exact byte input to signing.
#
# Guarantees: two structurally equal values produce byte-identical output
# regardless of key order or construction order. Sequences keep their order.
#
# ABSENT entries are omitted from mappings; None is emitted as null. The two
# are never equivalent.

import json
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from mtp.errors import CanonicalizationError


class _Absent:
    """Marker for "no value". Mapping entries holding it are dropped."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise CanonicalizationError(f"Non-finite number has no canonical form: {value!r}")
    if value == 0:
        return "0"
    # Same text a JavaScript peer produces for the same double
    # (Number::toString), so 5.0 is "5" and 1e-7 is "1e-7".
    _, digits, exponent = Decimal(repr(abs(value))).normalize().as_tuple()
    digits = "".join(map(str, digits))
    k = len(digits)
    n = exponent + k
    sign = "-" if value < 0 else ""
    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * -n + digits
    mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
    return f"{sign}{mantissa}e{n - 1:+d}"


def _encode(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _number(value)
    if isinstance(value, str):
        return _string(value)
    if isinstance(value, BaseModel):
        return _encode(value.model_dump(by_alias=True))
    if isinstance(value, Mapping):
        return _encode_mapping(value)
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    if value is ABSENT:
        raise CanonicalizationError("ABSENT is only meaningful as a mapping value.")

    raise CanonicalizationError(
        f"Values of type {type(value).__name__} have no canonical form."
    )


def _encode_mapping(value: Mapping) -> str:
    parts: list[str] = []
    for key in value:
        if not isinstance(key, str):
            raise CanonicalizationError(f"Mapping keys must be strings, got {key!r}.")

    for key in sorted(value):
        item = value[key]
        if item is ABSENT:
            continue
        parts.append(f"{_string(key)}:{_encode(item)}")
    return "{" + ",".join(parts) + "}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def canonical_text(value: Any) -> str:
    """Canonical form of `value` as text. Raises CanonicalizationError."""
    return _encode(value)


def canonicalize(value: Any) -> bytes:
    """Canonical form of `value` as UTF-8 bytes, ready to sign."""
    return canonical_text(value).encode("utf-8")
