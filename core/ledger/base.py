"""
Claimed-Set Ledger Interface

A ledger records which allocation indices have claimed. The contract every
implementation honours:

- has_claimed(i) is exact: no false positives, no false negatives
- mark_claimed(i) is check-and-set: it returns MarkResult.OK exactly once
  per index and MarkResult.ALREADY_CLAIMED afterwards
- marks are permanent; there is no unmark
- to_bytes()/from_bytes() round-trip the full set deterministically
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import ClassVar, Iterator, Optional

from core.schemas.errors import IndexOutOfRangeException


MAX_CLAIMS: int = 1_000_000


class LedgerKind(IntEnum):
    """Ledger encoding tag, persisted as one byte in the state layout."""
    RESIDUE = 0
    BITSET = 1

    @classmethod
    def from_name(cls, name: str) -> "LedgerKind":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Unknown ledger kind {name!r}; expected one of "
                f"{[k.name.lower() for k in cls]}"
            ) from None


class MarkResult(str, Enum):
    OK = "ok"
    ALREADY_CLAIMED = "already_claimed"


class ClaimedLedger(ABC):
    """Base class for claimed-set encodings."""

    kind: ClassVar[LedgerKind]

    def __init__(self, capacity: int = MAX_CLAIMS) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self._capacity = capacity
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Indices in [0, capacity) can be recorded."""
        return self._capacity

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self._capacity:
            raise IndexOutOfRangeException(
                f"Index {index} outside ledger capacity {self._capacity}",
                index=index,
            )

    def has_claimed(self, index: int) -> bool:
        self._check_index(index)
        return self._contains(index)

    def mark_claimed(self, index: int) -> MarkResult:
        self._check_index(index)
        with self._lock:
            if self._contains(index):
                return MarkResult.ALREADY_CLAIMED
            self._add(index)
            return MarkResult.OK

    def ensure_capacity(self, capacity: int) -> None:
        """Make room for indices below `capacity`. Never shrinks."""
        if capacity > self._capacity:
            self._grow(capacity)

    def footprint(self) -> int:
        """Serialized size in bytes."""
        return len(self.to_bytes())

    def __len__(self) -> int:
        return self.claimed_count

    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and 0 <= index < self._capacity and self._contains(index)

    @property
    @abstractmethod
    def claimed_count(self) -> int:
        ...

    @abstractmethod
    def iter_claimed(self) -> Iterator[int]:
        """Claimed indices in ascending order."""

    @abstractmethod
    def to_bytes(self) -> bytes:
        ...

    @classmethod
    @abstractmethod
    def from_bytes(cls, data: bytes, capacity: Optional[int] = None) -> "ClaimedLedger":
        ...

    @abstractmethod
    def _contains(self, index: int) -> bool:
        ...

    @abstractmethod
    def _add(self, index: int) -> None:
        ...

    def _grow(self, capacity: int) -> None:
        self._capacity = capacity


__all__ = [
    "MAX_CLAIMS",
    "LedgerKind",
    "MarkResult",
    "ClaimedLedger",
]
