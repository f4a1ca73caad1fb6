"""
Request Models

Validated inputs for the airdrop program. Validation here only checks
shape (integer ranges, digest sizes); eligibility is decided by the
program against the committed root.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.crypto.hashing import DIGEST_SIZE, from_hex

U64_MAX: int = 2**64 - 1
I64_MIN: int = -(2**63)
I64_MAX: int = 2**63 - 1


def _coerce_digest(value: Any) -> bytes:
    if isinstance(value, str):
        value = from_hex(value)
    if isinstance(value, (list, tuple)):
        value = bytes(value)
    if not isinstance(value, (bytes, bytearray)):
        raise ValueError(f"digest must be bytes or 0x-hex, got {type(value).__name__}")
    if len(value) != DIGEST_SIZE:
        raise ValueError(f"digest must be {DIGEST_SIZE} bytes, got {len(value)}")
    return bytes(value)


class ClaimRequest(BaseModel):
    """
    A recipient's claim: the allocation index, the allocated amount, and
    the sibling path proving the pair under the current root.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    index: int = Field(..., ge=0, le=U64_MAX, description="0-based allocation index")
    amount: int = Field(..., ge=0, le=U64_MAX, description="Allocated amount in base units")
    proof: tuple[bytes, ...] = Field(
        default=(),
        description="Sibling digests, leaf level first",
    )

    @field_validator("proof", mode="before")
    @classmethod
    def _validate_proof(cls, value: Any) -> tuple[bytes, ...]:
        if value is None:
            return ()
        return tuple(_coerce_digest(item) for item in value)


class WindowUpdate(BaseModel):
    """New claim window; replaces the current one entirely."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    start_ts: int = Field(..., ge=I64_MIN, le=I64_MAX)
    duration: int = Field(..., ge=I64_MIN, le=I64_MAX)


class RootUpdate(BaseModel):
    """New commitment and declared claim count."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    merkle_root: bytes
    total_claims: int = Field(..., ge=0, le=U64_MAX)

    @field_validator("merkle_root", mode="before")
    @classmethod
    def _validate_root(cls, value: Any) -> bytes:
        return _coerce_digest(value)


__all__ = [
    "U64_MAX",
    "I64_MIN",
    "I64_MAX",
    "ClaimRequest",
    "WindowUpdate",
    "RootUpdate",
]
