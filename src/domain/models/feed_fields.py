"""Tolerant field readers for the feed's loosely typed JSON objects.

Optional readers return None for absent keys, nulls and wrong types.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from src.domain.exceptions.feed import BusDecodeError


def opt_str(record: Mapping[str, Any], key: str) -> str | None:
    value = record.get(key)
    return value if isinstance(value, str) else None


def opt_int(record: Mapping[str, Any], key: str) -> int | None:
    value = record.get(key)
    # bool is an int subclass.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def opt_bool(record: Mapping[str, Any], key: str) -> bool | None:
    value = record.get(key)
    return value if isinstance(value, bool) else None


def required_str(record: Mapping[str, Any], key: str) -> str:
    if key not in record:
        raise BusDecodeError(f"missing required field {key!r}")
    value = record[key]
    if not isinstance(value, str):
        raise BusDecodeError(
            f"field {key!r} must be a string, got {type(value).__name__}"
        )
    return value
