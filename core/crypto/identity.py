"""
Identities

32-byte account identities. An Address is the raw key bytes of a wallet or a
program-derived account; the airdrop engine never needs the private half, so
a Keypair here only carries a random identity for tooling and tests.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from core.crypto.hashing import from_hex, to_hex


ADDRESS_SIZE: int = 32


@dataclass(frozen=True, order=True)
class Address:
    """A 32-byte account identity."""
    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError(f"Address expects bytes, got {type(self.raw).__name__}")
        if len(self.raw) != ADDRESS_SIZE:
            raise ValueError(
                f"Address must be {ADDRESS_SIZE} bytes, got {len(self.raw)}"
            )
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_hex(cls, value: str) -> "Address":
        return cls(from_hex(value))

    def to_hex(self) -> str:
        return to_hex(self.raw)

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"Address({self.to_hex()[:10]}…)"


ZERO_ADDRESS = Address(bytes(ADDRESS_SIZE))


@dataclass(frozen=True)
class Keypair:
    """Random wallet identity used by tooling and tests."""
    address: Address = field(default_factory=lambda: Address(secrets.token_bytes(ADDRESS_SIZE)))

    @classmethod
    def generate(cls) -> "Keypair":
        return cls()

    @property
    def public_key(self) -> Address:
        return self.address


__all__ = [
    "ADDRESS_SIZE",
    "Address",
    "Keypair",
    "ZERO_ADDRESS",
]
