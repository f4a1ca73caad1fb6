"""
Core cryptographic utilities.

Hashing (keccak-256 leaves and parents, sha256 derivations) and the
32-byte identities that appear in leaves and accounts.
"""
from .hashing import (
    DIGEST_SIZE,
    keccak256,
    sha256,
    hash_canonical,
    hash_pair,
    to_hex,
    from_hex,
    from_hex32,
)
from .identity import ADDRESS_SIZE, Address, Keypair, ZERO_ADDRESS

__all__ = [
    "DIGEST_SIZE",
    "keccak256",
    "sha256",
    "hash_canonical",
    "hash_pair",
    "to_hex",
    "from_hex",
    "from_hex32",
    "ADDRESS_SIZE",
    "Address",
    "Keypair",
    "ZERO_ADDRESS",
]
