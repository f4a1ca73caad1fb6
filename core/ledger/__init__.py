"""
Claimed-Set Ledgers

Exact, permanent check-and-set records of which allocation indices have
claimed.

Usage:
    from core.ledger import new_ledger, LedgerKind, MarkResult

    ledger = new_ledger(LedgerKind.RESIDUE, capacity=1_000_000)
    assert ledger.mark_claimed(42) is MarkResult.OK
    assert ledger.mark_claimed(42) is MarkResult.ALREADY_CLAIMED
"""
from __future__ import annotations

from typing import Sequence

from .base import MAX_CLAIMS, ClaimedLedger, LedgerKind, MarkResult
from .bitset import BitsetLedger
from .residue import DEFAULT_MODULI, ResidueLedger, crt_reconstruct, validate_moduli


def new_ledger(
    kind: LedgerKind,
    capacity: int = MAX_CLAIMS,
    moduli: Sequence[int] = DEFAULT_MODULI,
) -> ClaimedLedger:
    """Create an empty ledger of the given kind."""
    if kind is LedgerKind.RESIDUE:
        return ResidueLedger(capacity=capacity, moduli=moduli)
    if kind is LedgerKind.BITSET:
        return BitsetLedger(capacity=capacity)
    raise ValueError(f"Unsupported ledger kind: {kind!r}")


def decode_ledger(kind: int, data: bytes, capacity: int = MAX_CLAIMS) -> ClaimedLedger:
    """
    Decode a serialized ledger of the given kind tag.

    A residue ledger spans every index its moduli address (up to MAX_CLAIMS),
    so indices recorded under an earlier, larger root stay readable. A bitset
    keeps its stored size and grows to `capacity` if that is larger.

    Raises:
        ValueError: On an unknown kind or malformed data
    """
    try:
        ledger_kind = LedgerKind(kind)
    except ValueError:
        raise ValueError(f"Unknown ledger kind tag: {kind}") from None
    if ledger_kind is LedgerKind.RESIDUE:
        return ResidueLedger.from_bytes(data)
    return BitsetLedger.from_bytes(data, capacity=capacity)


__all__ = [
    "MAX_CLAIMS",
    "ClaimedLedger",
    "LedgerKind",
    "MarkResult",
    "BitsetLedger",
    "ResidueLedger",
    "DEFAULT_MODULI",
    "crt_reconstruct",
    "validate_moduli",
    "new_ledger",
    "decode_ledger",
]
