"""
Module 02 - Hashing Utilities
Basic hashing and canonical hashing utilities for Merkle commitments.

This module provides:
- Keccak-256 hashing for raw bytes (leaves and Merkle parents)
- SHA-256 hashing for address derivation and account discriminators
- Canonical hashing for objects (via dumps_canonical)
- Hex encoding/decoding with 0x prefix

Security/Determinism Notes:
- Always hash raw bytes exactly as specified
- Keccak-256 is the original Keccak padding, NOT hashlib.sha3_256
- All operations are deterministic
"""
from __future__ import annotations

import hashlib
from typing import Any

from Crypto.Hash import keccak

from core.schemas.canonical import dumps_canonical


DIGEST_SIZE: int = 32


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash of raw bytes.

    Args:
        data: Raw bytes to hash

    Returns:
        32-byte Keccak-256 digest

    Example:
        >>> keccak256(b"").hex()
        'c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470'
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Args:
        data: Raw bytes to hash

    Returns:
        32-byte SHA-256 digest
    """
    return hashlib.sha256(data).digest()


def hash_canonical(obj: Any) -> bytes:
    """
    Hash an object using canonical JSON serialization.

    Rule: digest = sha256(dumps_canonical(obj).encode("utf-8"))

    Args:
        obj: Any object that can be canonically serialized
             (Pydantic model, dict, list, primitives)

    Returns:
        32-byte SHA-256 digest of the canonical JSON

    Raises:
        CanonicalizationException: If object cannot be canonically serialized
    """
    canonical_json = dumps_canonical(obj)
    return sha256(canonical_json.encode("utf-8"))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """
    Hash two digests in canonical sorted order.

    The smaller digest (raw byte comparison) is always placed first, so
    keccak256(a ‖ b) == hash_pair(b, a). This is the Merkle parent rule.

    Args:
        a: First child digest
        b: Second child digest

    Returns:
        32-byte Keccak-256 digest of min(a, b) ‖ max(a, b)
    """
    if a <= b:
        return keccak256(a + b)
    return keccak256(b + a)


def to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string with 0x prefix.

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    return "0x" + data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert hexadecimal string (with 0x prefix) to bytes.

    Args:
        hex_string: Hex string with 0x prefix

    Returns:
        Decoded bytes

    Raises:
        ValueError: If string doesn't start with 0x, has odd length,
                   or contains invalid hex characters
    """
    if not hex_string.startswith("0x"):
        raise ValueError(
            f"Hex string must start with '0x' prefix, got: {hex_string[:10]}..."
        )

    hex_content = hex_string[2:]

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length after 0x prefix, "
            f"got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


def from_hex32(hex_string: str) -> bytes:
    """Decode a 0x-prefixed hex string that must hold exactly one digest."""
    data = from_hex(hex_string)
    if len(data) != DIGEST_SIZE:
        raise ValueError(f"Expected {DIGEST_SIZE} bytes, got {len(data)}")
    return data


__all__ = [
    "DIGEST_SIZE",
    "keccak256",
    "sha256",
    "hash_canonical",
    "hash_pair",
    "to_hex",
    "from_hex",
    "from_hex32",
]
