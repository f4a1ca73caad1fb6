"""
Module 02 - Claim Leaf Encoding

leaf = keccak256(u64_le(index) ‖ recipient(32 bytes) ‖ u64_le(amount))

The off-chain builder and the program both call claim_leaf(); any change
to this encoding invalidates every published root.
"""
from __future__ import annotations

from typing import Union

from core.crypto.hashing import keccak256
from core.crypto.identity import ADDRESS_SIZE, Address

U64_MAX: int = 2**64 - 1

RecipientLike = Union[Address, bytes]


def _u64_le(value: int, name: str) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} must fit in an unsigned 64-bit integer, got {value}")
    return value.to_bytes(8, "little")


def recipient_bytes(recipient: RecipientLike) -> bytes:
    """Raw identity bytes of a recipient."""
    raw = recipient.raw if isinstance(recipient, Address) else bytes(recipient)
    if len(raw) != ADDRESS_SIZE:
        raise ValueError(f"recipient must be {ADDRESS_SIZE} bytes, got {len(raw)}")
    return raw


def encode_leaf_preimage(index: int, recipient: RecipientLike, amount: int) -> bytes:
    """The 48-byte preimage hashed into a leaf."""
    return _u64_le(index, "index") + recipient_bytes(recipient) + _u64_le(amount, "amount")


def claim_leaf(index: int, recipient: RecipientLike, amount: int) -> bytes:
    """
    Compute the leaf digest for one allocation entry.

    Args:
        index: 0-based position of the entry in the allocation list
        recipient: Recipient identity (Address or 32 raw bytes)
        amount: Allocated amount in base units

    Returns:
        32-byte Keccak-256 digest
    """
    return keccak256(encode_leaf_preimage(index, recipient, amount))


__all__ = [
    "U64_MAX",
    "recipient_bytes",
    "encode_leaf_preimage",
    "claim_leaf",
]
