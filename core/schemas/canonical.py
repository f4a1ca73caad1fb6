"""
Module 01 - Schemas & Canonicalization
File: canonical.py

Purpose: Deterministic serialization utilities for event ids, allocation
files and report hashing.

CRITICAL: All outputs from this module MUST be deterministic across runs.
"""

import json
import math
from enum import Enum
from typing import Any

from pydantic import BaseModel

from .errors import CanonicalizationException

# Canonical JSON separators - no whitespace
CANONICAL_JSON_SEPARATORS: tuple[str, str] = (",", ":")


def canonicalize_value(value: Any, path: str = "") -> Any:
    """
    Recursively canonicalize a value for deterministic JSON serialization.

    Bytes become 0x-prefixed hex, objects exposing raw bytes (addresses)
    become their hex form, enums their value.

    Raises:
        CanonicalizationException: If the value cannot be canonicalized
            (e.g., contains NaN/Infinity floats).
    """
    if value is None:
        return None

    if isinstance(value, bool):
        # Must check bool before int since bool is subclass of int
        return value

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise CanonicalizationException(
                message=f"Non-finite float value encountered: {value}",
                details={"path": path, "value": str(value)},
            )
        return value

    if isinstance(value, str):
        return value

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, BaseModel):
        dumped = value.model_dump(mode="json", by_alias=True, exclude_none=True)
        return canonicalize_value(dumped, path)

    if isinstance(value, dict):
        return {
            str(k): canonicalize_value(v, f"{path}.{k}" if path else str(k))
            for k, v in value.items()
            if v is not None
        }

    if isinstance(value, (list, tuple)):
        return [
            canonicalize_value(item, f"{path}[{i}]")
            for i, item in enumerate(value)
        ]

    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()

    if hasattr(value, "to_hex"):
        return value.to_hex()

    raise CanonicalizationException(
        message=f"Cannot canonicalize value of type {type(value).__name__}",
        details={"path": path, "type": type(value).__name__},
    )


def dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to canonical JSON string.

    Returns:
        A canonical JSON string with:
            - Sorted keys
            - No extra whitespace
            - None fields excluded
            - Bytes as 0x-prefixed hex
            - No NaN/Infinity floats

    Example:
        >>> dumps_canonical({"b": 2, "a": b"\\x01"})
        '{"a":"0x01","b":2}'
    """
    try:
        canonicalized = canonicalize_value(obj)
        return json.dumps(
            canonicalized,
            sort_keys=True,
            separators=CANONICAL_JSON_SEPARATORS,
            ensure_ascii=False,
        )
    except CanonicalizationException:
        raise
    except Exception as e:
        raise CanonicalizationException(
            message=f"Failed to serialize to canonical JSON: {e}",
            details={"type": type(obj).__name__, "error": str(e)},
        ) from e


def canonical_equals(obj1: Any, obj2: Any) -> bool:
    """Check if two objects are canonically equal."""
    try:
        return dumps_canonical(obj1) == dumps_canonical(obj2)
    except CanonicalizationException:
        return False
