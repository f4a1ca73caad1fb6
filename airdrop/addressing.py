"""
Deterministic Addressing

Every account the program touches sits at an address derived from fixed
seed strings plus the per-airdrop snapshot hash, so nothing needs a registry
to locate a state or its vault.

    address = sha256(seed_0 ‖ … ‖ seed_n ‖ program_id ‖ b"ProgramDerivedAddress")
"""
from __future__ import annotations

from typing import Sequence

from core.crypto.hashing import sha256
from core.crypto.identity import Address


STATE_SEED: bytes = b"state"
VAULT_SEED: bytes = b"vault"
TOKEN_ACCOUNT_SEED: bytes = b"token-account"

_PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LEN = 32
MAX_SEEDS = 16


def derive_program_address(seeds: Sequence[bytes], program_id: Address) -> Address:
    """
    Derive an address owned by `program_id` from `seeds`.

    Raises:
        ValueError: If there are too many seeds or a seed is longer than 32 bytes
    """
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"At most {MAX_SEEDS} seeds allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise ValueError(f"Seed longer than {MAX_SEED_LEN} bytes: {len(seed)}")
    return Address(sha256(b"".join(seeds) + program_id.raw + _PDA_MARKER))


def _snapshot_seed(snapshot_hash: bytes) -> bytes:
    if len(snapshot_hash) != 32:
        raise ValueError(f"snapshot_hash must be 32 bytes, got {len(snapshot_hash)}")
    return bytes(snapshot_hash)


def state_address(snapshot_hash: bytes, program_id: Address) -> Address:
    """Address of the airdrop state for a snapshot."""
    return derive_program_address([STATE_SEED, _snapshot_seed(snapshot_hash)], program_id)


def vault_authority_address(snapshot_hash: bytes, program_id: Address) -> Address:
    """Address that owns the vault token account; only the program signs for it."""
    return derive_program_address([VAULT_SEED, _snapshot_seed(snapshot_hash)], program_id)


def associated_token_address(owner: Address, mint: Address, token_program_id: Address) -> Address:
    """Canonical token account of `owner` for `mint`."""
    return derive_program_address(
        [TOKEN_ACCOUNT_SEED, owner.raw, mint.raw], token_program_id
    )


__all__ = [
    "STATE_SEED",
    "VAULT_SEED",
    "derive_program_address",
    "state_address",
    "vault_authority_address",
    "associated_token_address",
]
