"""
Airdrop State and Persisted Layout

One AirdropState per snapshot. The program never keeps a state object
between operations: it decodes the account bytes, mutates, and encodes them
back inside a transaction.

Layout (little-endian):
    8   discriminator     sha256(b"account:AirdropState")[:8]
    1   layout version
    32  authority
    32  snapshot_hash
    8   claim_start_ts    i64
    8   claim_duration    i64
    1   claim_closed      u8
    32  merkle_root
    8   total_claims      u64
    1   ledger kind       u8
    ..  ledger bytes
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any

from core.crypto.hashing import sha256, to_hex
from core.crypto.identity import Address
from core.ledger import ClaimedLedger, decode_ledger
from core.schemas.errors import StateLayoutException
from core.schemas.versioning import (
    LAYOUT_VERSION,
    UnsupportedLayoutVersionError,
    assert_supported_layout_version,
)


STATE_DISCRIMINATOR: bytes = sha256(b"account:AirdropState")[:8]

_HEADER = struct.Struct("<8sB32s32sqqB32sQB")
HEADER_SIZE: int = _HEADER.size


class Phase(str, Enum):
    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    CLOSED = "closed"
    DESTROYED = "destroyed"


class WindowStatus(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass
class AirdropState:
    """Decoded airdrop state."""
    authority: Address
    snapshot_hash: bytes
    claim_start_ts: int
    claim_duration: int
    claim_closed: bool
    merkle_root: bytes
    total_claims: int
    ledger: ClaimedLedger

    @property
    def claim_end_ts(self) -> int:
        """First second after the window; the window is [start, end)."""
        return self.claim_start_ts + self.claim_duration

    @property
    def phase(self) -> Phase:
        return Phase.CLOSED if self.claim_closed else Phase.OPEN

    def window_status(self, now: int) -> WindowStatus:
        if now < self.claim_start_ts:
            return WindowStatus.NOT_STARTED
        if now >= self.claim_end_ts:
            return WindowStatus.ENDED
        return WindowStatus.ACTIVE

    def has_claimed(self, index: int) -> bool:
        return self.ledger.has_claimed(index)

    def to_bytes(self) -> bytes:
        header = _HEADER.pack(
            STATE_DISCRIMINATOR,
            LAYOUT_VERSION,
            self.authority.raw,
            self.snapshot_hash,
            self.claim_start_ts,
            self.claim_duration,
            1 if self.claim_closed else 0,
            self.merkle_root,
            self.total_claims,
            int(self.ledger.kind),
        )
        return header + self.ledger.to_bytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "AirdropState":
        """
        Decode account bytes.

        Raises:
            StateLayoutException: If the bytes are not a valid airdrop state
        """
        if len(data) < HEADER_SIZE:
            raise StateLayoutException(
                f"Account data is {len(data)} bytes, shorter than the {HEADER_SIZE}-byte header"
            )
        (
            discriminator,
            version,
            authority,
            snapshot_hash,
            start_ts,
            duration,
            closed,
            merkle_root,
            total_claims,
            ledger_kind,
        ) = _HEADER.unpack_from(data, 0)

        if discriminator != STATE_DISCRIMINATOR:
            raise StateLayoutException("Account is not an airdrop state (discriminator mismatch)")
        try:
            assert_supported_layout_version(version)
        except UnsupportedLayoutVersionError as e:
            raise StateLayoutException(str(e), details={"version": version}) from e
        if closed not in (0, 1):
            raise StateLayoutException(f"Invalid claim_closed byte {closed}")

        try:
            ledger = decode_ledger(ledger_kind, bytes(data[HEADER_SIZE:]), capacity=total_claims)
        except ValueError as e:
            raise StateLayoutException(f"Invalid claimed ledger: {e}") from e

        return cls(
            authority=Address(authority),
            snapshot_hash=snapshot_hash,
            claim_start_ts=start_ts,
            claim_duration=duration,
            claim_closed=bool(closed),
            merkle_root=merkle_root,
            total_claims=total_claims,
            ledger=ledger,
        )

    def summary(self) -> dict[str, Any]:
        """Report-friendly view (hex digests, no ledger bytes)."""
        return {
            "authority": self.authority.to_hex(),
            "snapshot_hash": to_hex(self.snapshot_hash),
            "merkle_root": to_hex(self.merkle_root),
            "claim_start_ts": self.claim_start_ts,
            "claim_duration": self.claim_duration,
            "claim_closed": self.claim_closed,
            "total_claims": self.total_claims,
            "claimed_count": self.ledger.claimed_count,
            "ledger_kind": self.ledger.kind.name.lower(),
            "ledger_bytes": self.ledger.footprint(),
        }


__all__ = [
    "STATE_DISCRIMINATOR",
    "HEADER_SIZE",
    "Phase",
    "WindowStatus",
    "AirdropState",
]
