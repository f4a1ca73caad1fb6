"""
Residue-Number-System Claimed Ledger

Indices are identified by their residues modulo three pairwise-coprime
moduli. Since 971 * 311 * 601 = 181,486,121 exceeds the largest supported
index count, the residue triple (r0, r1, r2) of an index is unique and the
index is recovered with the Chinese Remainder Theorem.

Layout in memory and on the wire:

- one occupancy bitmap per modulus (971 + 311 + 601 bits = 237 bytes).
  If any residue bit of an index is clear, that index has not claimed.
- one bucket per occupied r0. A sparse bucket holds the sorted packed pairs
  r1 * 601 + r2 (3 bytes each) of the indices claimed in it. Once that list
  would outgrow a bitmap over the bucket's positions k (index = r0 + k * m0,
  ceil(capacity / m0) bits), the bucket switches to the bitmap for good.

The bitmaps alone would report false positives for any two indices that
share residues; the buckets make membership exact. The fixed part is a few
hundred bytes, a sparse ledger grows by 3 bytes per claim, and a full one
is bounded by max_footprint(), about capacity / 8 plus 3 bytes per bucket.

Wire format (little-endian):
    u8      modulus count (3)
    u16 * 3 moduli
    bitmap0 | bitmap1 | bitmap2
    for each set bit r0 of bitmap0, ascending:
        u16  header; bit 15 marks a dense bucket
        sparse: u24 * header          packed (r1, r2), ascending
        dense:  ceil(n / 8) bytes     position bitmap, n = header & 0x7FFF
"""
from __future__ import annotations

import bisect
import math
import struct
from typing import Iterator, Optional, Sequence

from core.ledger.base import MAX_CLAIMS, ClaimedLedger, LedgerKind


DEFAULT_MODULI: tuple[int, int, int] = (971, 311, 601)

_ENTRY_SIZE = 3
_BUCKET_HEADER_SIZE = 2
_DENSE_FLAG = 0x8000
_BUCKET_LIMIT = 0x7FFF


def _bitmap_size(bits: int) -> int:
    return (bits + 7) // 8


def _get_bit(bitmap: bytearray | bytes, bit: int) -> bool:
    return bool(bitmap[bit >> 3] & (1 << (bit & 7)))


def _set_bit(bitmap: bytearray, bit: int) -> None:
    bitmap[bit >> 3] |= 1 << (bit & 7)


def _iter_bits(bitmap: bytearray | bytes) -> Iterator[int]:
    for byte_index, byte in enumerate(bitmap):
        if not byte:
            continue
        for bit in range(8):
            if byte & (1 << bit):
                yield byte_index * 8 + bit


def validate_moduli(moduli: Sequence[int], capacity: int) -> None:
    """
    Raises:
        ValueError: unless there are exactly three pairwise-coprime moduli
            whose product covers `capacity`
    """
    if len(moduli) != 3:
        raise ValueError(f"Residue ledger needs exactly 3 moduli, got {len(moduli)}")
    for m in moduli:
        if m < 2 or m > 0xFFFF:
            raise ValueError(f"Modulus {m} outside [2, 65535]")
    for i in range(len(moduli)):
        for j in range(i + 1, len(moduli)):
            if math.gcd(moduli[i], moduli[j]) != 1:
                raise ValueError(f"Moduli {moduli[i]} and {moduli[j]} are not coprime")
    if math.prod(moduli) < capacity:
        raise ValueError(
            f"Moduli product {math.prod(moduli)} cannot address {capacity} indices"
        )
    if moduli[1] * moduli[2] > 1 << (8 * _ENTRY_SIZE):
        raise ValueError("Packed (r1, r2) pair does not fit in 3 bytes")
    # bucket headers carry 15 bits of length
    if -(-capacity // moduli[0]) > _BUCKET_LIMIT:
        raise ValueError(
            f"Capacity {capacity} needs more than {_BUCKET_LIMIT} positions per bucket"
        )


def crt_reconstruct(residues: Sequence[int], moduli: Sequence[int]) -> int:
    """Smallest non-negative x with x ≡ residues[i] (mod moduli[i])."""
    product = math.prod(moduli)
    x = 0
    for r, m in zip(residues, moduli):
        partial = product // m
        x += r * partial * pow(partial, -1, m)
    return x % product


class _DenseBucket:
    """Bitmap over the positions k of the indices r0 + k * m0 of one bucket."""

    __slots__ = ("size", "bits")

    def __init__(self, size: int, bits: Optional[bytearray] = None) -> None:
        self.size = size
        self.bits = bits if bits is not None else bytearray(_bitmap_size(size))

    def __contains__(self, k: int) -> bool:
        return k < self.size and _get_bit(self.bits, k)

    def add(self, k: int) -> None:
        _set_bit(self.bits, k)

    def resize(self, size: int) -> None:
        if size > self.size:
            self.bits.extend(bytes(_bitmap_size(size) - len(self.bits)))
            self.size = size

    def positions(self) -> Iterator[int]:
        return _iter_bits(self.bits)


class ResidueLedger(ClaimedLedger):
    """Exact claimed set keyed by CRT residues."""

    kind = LedgerKind.RESIDUE

    def __init__(
        self,
        capacity: int = MAX_CLAIMS,
        moduli: Sequence[int] = DEFAULT_MODULI,
    ) -> None:
        moduli = tuple(moduli)
        validate_moduli(moduli, capacity)
        super().__init__(capacity)
        self.moduli: tuple[int, int, int] = moduli  # type: ignore[assignment]
        self._product = math.prod(moduli)
        self._crt_terms = tuple(
            (self._product // m) * pow(self._product // m, -1, m) for m in moduli
        )
        self._bitmaps: list[bytearray] = [bytearray(_bitmap_size(m)) for m in moduli]
        self._buckets: dict[int, list[int]] = {}
        self._dense: dict[int, _DenseBucket] = {}
        self._count = 0

    # --- residue arithmetic -------------------------------------------------

    def residues(self, index: int) -> tuple[int, int, int]:
        m0, m1, m2 = self.moduli
        return index % m0, index % m1, index % m2

    def _pack(self, r1: int, r2: int) -> int:
        return r1 * self.moduli[2] + r2

    def _unpack(self, packed: int) -> tuple[int, int]:
        return divmod(packed, self.moduli[2])

    def _reconstruct(self, r0: int, packed: int) -> int:
        r1, r2 = self._unpack(packed)
        c0, c1, c2 = self._crt_terms
        return (r0 * c0 + r1 * c1 + r2 * c2) % self._product

    def _bucket_span(self) -> int:
        """Positions a dense bucket needs to cover the current capacity."""
        return -(-self._capacity // self.moduli[0])

    # --- ClaimedLedger ------------------------------------------------------

    def _contains(self, index: int) -> bool:
        r0, r1, r2 = self.residues(index)
        if not (
            _get_bit(self._bitmaps[0], r0)
            and _get_bit(self._bitmaps[1], r1)
            and _get_bit(self._bitmaps[2], r2)
        ):
            return False
        dense = self._dense.get(r0)
        if dense is not None:
            return index // self.moduli[0] in dense
        bucket = self._buckets.get(r0)
        if not bucket:
            return False
        packed = self._pack(r1, r2)
        pos = bisect.bisect_left(bucket, packed)
        return pos < len(bucket) and bucket[pos] == packed

    def _add(self, index: int) -> None:
        r0, r1, r2 = self.residues(index)
        dense = self._dense.get(r0)
        if dense is not None:
            dense.resize(self._bucket_span())
            dense.add(index // self.moduli[0])
        else:
            bucket = self._buckets.setdefault(r0, [])
            bisect.insort(bucket, self._pack(r1, r2))
            if len(bucket) * _ENTRY_SIZE > _bitmap_size(self._bucket_span()):
                self._densify(r0)
        _set_bit(self._bitmaps[0], r0)
        _set_bit(self._bitmaps[1], r1)
        _set_bit(self._bitmaps[2], r2)
        self._count += 1

    def _densify(self, r0: int) -> None:
        dense = _DenseBucket(self._bucket_span())
        for packed in self._buckets.pop(r0):
            dense.add(self._reconstruct(r0, packed) // self.moduli[0])
        self._dense[r0] = dense

    def _grow(self, capacity: int) -> None:
        validate_moduli(self.moduli, capacity)
        super()._grow(capacity)

    @property
    def claimed_count(self) -> int:
        return self._count

    @property
    def bucket_count(self) -> int:
        return len(self._buckets) + len(self._dense)

    @property
    def dense_bucket_count(self) -> int:
        return len(self._dense)

    def iter_claimed(self) -> Iterator[int]:
        m0 = self.moduli[0]
        indices = []
        for r0, bucket in self._buckets.items():
            indices.extend(self._reconstruct(r0, packed) for packed in bucket)
        for r0, dense in self._dense.items():
            indices.extend(r0 + k * m0 for k in dense.positions())
        return iter(sorted(indices))

    def fixed_footprint(self) -> int:
        """Bytes used before any claim is recorded."""
        return 1 + 2 * len(self.moduli) + sum(len(b) for b in self._bitmaps)

    def max_footprint(self) -> int:
        """Serialized size with every index below capacity claimed."""
        per_bucket = _BUCKET_HEADER_SIZE + _bitmap_size(self._bucket_span())
        return self.fixed_footprint() + self.moduli[0] * per_bucket

    # --- serialization ------------------------------------------------------

    def to_bytes(self) -> bytes:
        out = bytearray()
        out += struct.pack("<B", len(self.moduli))
        out += struct.pack("<" + "H" * len(self.moduli), *self.moduli)
        for bitmap in self._bitmaps:
            out += bitmap
        for r0 in range(self.moduli[0]):
            if not _get_bit(self._bitmaps[0], r0):
                continue
            dense = self._dense.get(r0)
            if dense is not None:
                out += struct.pack("<H", _DENSE_FLAG | dense.size)
                out += dense.bits
                continue
            bucket = self._buckets[r0]
            out += struct.pack("<H", len(bucket))
            for packed in bucket:
                out += packed.to_bytes(_ENTRY_SIZE, "little")
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes, capacity: Optional[int] = None) -> "ResidueLedger":
        """
        Decode a serialized ledger.

        Without an explicit capacity the ledger spans every index its moduli
        can address, up to MAX_CLAIMS.

        Raises:
            ValueError: On truncated data or bitmaps inconsistent with entries
        """
        view = memoryview(data)
        try:
            (count,) = struct.unpack_from("<B", view, 0)
            moduli = struct.unpack_from("<" + "H" * count, view, 1)
        except struct.error as e:
            raise ValueError(f"Truncated residue ledger header: {e}") from e
        if capacity is None:
            capacity = min(MAX_CLAIMS, math.prod(moduli)) if moduli else 0
        ledger = cls(capacity=capacity, moduli=moduli)
        m0, m1, m2 = ledger.moduli
        offset = 1 + 2 * count

        bitmaps: list[bytes] = []
        for m in ledger.moduli:
            size = _bitmap_size(m)
            chunk = bytes(view[offset:offset + size])
            if len(chunk) != size:
                raise ValueError("Truncated residue bitmap")
            bitmaps.append(chunk)
            offset += size

        rebuilt = ledger._bitmaps
        for r0 in range(m0):
            if not _get_bit(bitmaps[0], r0):
                continue
            try:
                (header,) = struct.unpack_from("<H", view, offset)
            except struct.error as e:
                raise ValueError(f"Truncated bucket header for residue {r0}") from e
            offset += _BUCKET_HEADER_SIZE
            n = header & _BUCKET_LIMIT
            if n == 0:
                raise ValueError(f"Occupied residue {r0} has an empty bucket")
            _set_bit(rebuilt[0], r0)

            if header & _DENSE_FLAG:
                end = offset + _bitmap_size(n)
                if end > len(view):
                    raise ValueError(f"Truncated bucket for residue {r0}")
                bits = bytearray(view[offset:end])
                if n % 8 and bits[-1] >> (n % 8):
                    raise ValueError(f"Bucket {r0} has positions set beyond its size")
                dense = _DenseBucket(n, bits)
                for k in dense.positions():
                    index = r0 + k * m0
                    if index >= capacity:
                        raise ValueError(f"Decoded index {index} exceeds capacity {capacity}")
                    _set_bit(rebuilt[1], index % m1)
                    _set_bit(rebuilt[2], index % m2)
                    ledger._count += 1
                if not any(bits):
                    raise ValueError(f"Occupied residue {r0} has an empty bucket")
                ledger._dense[r0] = dense
                offset = end
                continue

            end = offset + n * _ENTRY_SIZE
            if end > len(view):
                raise ValueError(f"Truncated bucket for residue {r0}")
            bucket: list[int] = []
            previous = -1
            for pos in range(offset, end, _ENTRY_SIZE):
                packed = int.from_bytes(view[pos:pos + _ENTRY_SIZE], "little")
                if packed <= previous:
                    raise ValueError(f"Bucket {r0} entries are not strictly ascending")
                previous = packed
                r1, r2 = ledger._unpack(packed)
                if r1 >= m1:
                    raise ValueError(f"Bucket {r0} holds an invalid packed residue {packed}")
                index = ledger._reconstruct(r0, packed)
                if index >= capacity:
                    raise ValueError(f"Decoded index {index} exceeds capacity {capacity}")
                _set_bit(rebuilt[1], r1)
                _set_bit(rebuilt[2], r2)
                bucket.append(packed)
            ledger._buckets[r0] = bucket
            ledger._count += n
            offset = end

        if offset != len(view):
            raise ValueError(f"{len(view) - offset} trailing bytes after residue ledger")
        if [bytes(b) for b in rebuilt] != bitmaps:
            raise ValueError("Residue bitmaps do not match bucket entries")
        return ledger


__all__ = [
    "DEFAULT_MODULI",
    "ResidueLedger",
    "crt_reconstruct",
    "validate_moduli",
]
