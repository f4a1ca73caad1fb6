"""
State Layout Unit Tests
Tests for airdrop/state.py and airdrop/addressing.py

Tests:
- AirdropState byte layout round trip for both ledger kinds
- Header field positions
- Rejection of foreign or corrupted account data
- Window status boundaries (half-open interval)
- Deterministic address derivation
"""
import struct

import pytest

from airdrop.addressing import (
    associated_token_address,
    derive_program_address,
    state_address,
    vault_authority_address,
)
from airdrop.state import HEADER_SIZE, STATE_DISCRIMINATOR, AirdropState, Phase, WindowStatus
from core.crypto.hashing import sha256
from core.crypto.identity import Address
from core.ledger import BitsetLedger, ResidueLedger
from core.schemas.errors import StateLayoutException


def _state(ledger=None, closed=False):
    return AirdropState(
        authority=Address(b"\x01" * 32),
        snapshot_hash=sha256(b"snapshot"),
        claim_start_ts=1_000,
        claim_duration=300,
        claim_closed=closed,
        merkle_root=sha256(b"root"),
        total_claims=10,
        ledger=ledger if ledger is not None else ResidueLedger(capacity=10),
    )


class TestLayout:
    """Tests for to_bytes/from_bytes."""

    def test_header_size(self):
        assert HEADER_SIZE == 8 + 1 + 32 + 32 + 8 + 8 + 1 + 32 + 8 + 1

    def test_header_fields(self):
        data = _state().to_bytes()
        assert data[:8] == STATE_DISCRIMINATOR
        assert data[8] == 1
        assert data[9:41] == b"\x01" * 32
        assert struct.unpack_from("<q", data, 73)[0] == 1_000
        assert struct.unpack_from("<q", data, 81)[0] == 300

    @pytest.mark.parametrize("ledger_type", [ResidueLedger, BitsetLedger])
    def test_round_trip(self, ledger_type):
        ledger = ledger_type(capacity=10)
        ledger.mark_claimed(3)
        state = _state(ledger, closed=True)

        decoded = AirdropState.from_bytes(state.to_bytes())

        assert decoded.authority == state.authority
        assert decoded.snapshot_hash == state.snapshot_hash
        assert decoded.merkle_root == state.merkle_root
        assert decoded.claim_start_ts == 1_000
        assert decoded.claim_duration == 300
        assert decoded.claim_closed is True
        assert decoded.total_claims == 10
        assert decoded.ledger.kind is ledger.kind
        assert decoded.has_claimed(3)
        assert not decoded.has_claimed(4)
        assert decoded.to_bytes() == state.to_bytes()

    def test_negative_timestamps(self):
        state = _state()
        state.claim_start_ts = -5
        assert AirdropState.from_bytes(state.to_bytes()).claim_start_ts == -5

    def test_short_data(self):
        with pytest.raises(StateLayoutException, match="shorter"):
            AirdropState.from_bytes(b"\x00" * 10)

    def test_wrong_discriminator(self):
        data = bytearray(_state().to_bytes())
        data[0] ^= 0xFF
        with pytest.raises(StateLayoutException, match="discriminator"):
            AirdropState.from_bytes(bytes(data))

    def test_unsupported_version(self):
        data = bytearray(_state().to_bytes())
        data[8] = 99
        with pytest.raises(StateLayoutException) as exc_info:
            AirdropState.from_bytes(bytes(data))
        assert exc_info.value.details["version"] == 99

    def test_invalid_closed_byte(self):
        data = bytearray(_state().to_bytes())
        data[89] = 2
        with pytest.raises(StateLayoutException, match="claim_closed"):
            AirdropState.from_bytes(bytes(data))

    def test_corrupted_ledger(self):
        data = _state().to_bytes() + b"\x00"
        with pytest.raises(StateLayoutException, match="ledger"):
            AirdropState.from_bytes(data)

    def test_summary(self):
        summary = _state().summary()
        assert summary["ledger_kind"] == "residue"
        assert summary["claimed_count"] == 0
        assert summary["merkle_root"].startswith("0x")


class TestWindowStatus:
    """The window is [start, start + duration)."""

    def test_boundaries(self):
        state = _state()
        assert state.window_status(999) is WindowStatus.NOT_STARTED
        assert state.window_status(1_000) is WindowStatus.ACTIVE
        assert state.window_status(1_299) is WindowStatus.ACTIVE
        assert state.window_status(1_300) is WindowStatus.ENDED
        assert state.claim_end_ts == 1_300

    def test_phase(self):
        assert _state().phase is Phase.OPEN
        assert _state(closed=True).phase is Phase.CLOSED


class TestAddressing:
    """Tests for derived addresses."""

    program_id = Address(b"\x2f" * 32)

    def test_deterministic(self):
        snapshot = sha256(b"s")
        assert state_address(snapshot, self.program_id) == state_address(snapshot, self.program_id)

    def test_state_and_vault_differ(self):
        snapshot = sha256(b"s")
        assert state_address(snapshot, self.program_id) != vault_authority_address(
            snapshot, self.program_id
        )

    def test_snapshot_and_program_matter(self):
        a = state_address(sha256(b"a"), self.program_id)
        assert a != state_address(sha256(b"b"), self.program_id)
        assert a != state_address(sha256(b"a"), Address(b"\x30" * 32))

    def test_formula(self):
        snapshot = sha256(b"s")
        expected = sha256(b"state" + snapshot + self.program_id.raw + b"ProgramDerivedAddress")
        assert state_address(snapshot, self.program_id).raw == expected

    def test_associated_token_address(self):
        owner, mint = Address(b"\x01" * 32), Address(b"\x02" * 32)
        assert associated_token_address(owner, mint, self.program_id) != associated_token_address(
            mint, owner, self.program_id
        )

    def test_seed_limits(self):
        with pytest.raises(ValueError, match="longer"):
            derive_program_address([b"x" * 33], self.program_id)
        with pytest.raises(ValueError, match="32 bytes"):
            state_address(b"short", self.program_id)
