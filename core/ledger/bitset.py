"""
Dense Bitset Ledger

One bit per index. Exact and simple, at ceil(capacity / 8) bytes; used when
the residue ledger is disabled by configuration.

Wire format: u32 capacity (little-endian) followed by the bitmap.
"""
from __future__ import annotations

import struct
from typing import Iterator, Optional

from core.ledger.base import MAX_CLAIMS, ClaimedLedger, LedgerKind


class BitsetLedger(ClaimedLedger):
    """Claimed set as a dense bitmap."""

    kind = LedgerKind.BITSET

    def __init__(self, capacity: int = MAX_CLAIMS) -> None:
        if capacity > 0xFFFFFFFF:
            raise ValueError(f"Bitset capacity {capacity} does not fit in u32")
        super().__init__(capacity)
        self._bits = bytearray((capacity + 7) // 8)
        self._count = 0

    def _contains(self, index: int) -> bool:
        return bool(self._bits[index >> 3] & (1 << (index & 7)))

    def _add(self, index: int) -> None:
        self._bits[index >> 3] |= 1 << (index & 7)
        self._count += 1

    def _grow(self, capacity: int) -> None:
        if capacity > 0xFFFFFFFF:
            raise ValueError(f"Bitset capacity {capacity} does not fit in u32")
        self._bits.extend(bytes((capacity + 7) // 8 - len(self._bits)))
        super()._grow(capacity)

    @property
    def claimed_count(self) -> int:
        return self._count

    def iter_claimed(self) -> Iterator[int]:
        for byte_index, byte in enumerate(self._bits):
            if not byte:
                continue
            for bit in range(8):
                if byte & (1 << bit):
                    yield byte_index * 8 + bit

    def to_bytes(self) -> bytes:
        return struct.pack("<I", self._capacity) + bytes(self._bits)

    @classmethod
    def from_bytes(cls, data: bytes, capacity: Optional[int] = None) -> "BitsetLedger":
        """
        Decode a serialized bitset. The stored capacity wins over `capacity`
        when it is larger, so a ledger never loses indices on reload.

        Raises:
            ValueError: On truncated data or bits set beyond the stored capacity
        """
        if len(data) < 4:
            raise ValueError("Truncated bitset ledger header")
        (stored,) = struct.unpack_from("<I", data, 0)
        body = data[4:]
        if len(body) != (stored + 7) // 8:
            raise ValueError(
                f"Bitset body is {len(body)} bytes, expected {(stored + 7) // 8}"
            )
        ledger = cls(capacity=stored)
        ledger._bits[:] = body
        if stored % 8 and body and body[-1] >> (stored % 8):
            raise ValueError("Bitset has bits set beyond its capacity")
        ledger._count = sum(bin(b).count("1") for b in body)
        if capacity is not None:
            ledger.ensure_capacity(capacity)
        return ledger


__all__ = ["BitsetLedger"]
