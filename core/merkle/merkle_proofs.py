"""
Module 02 - Allocation Trees and Claim Verification
Class-based wrappers around the Merkle functions for allocation lists.

This module provides:
- AllocationEntry: one (recipient, amount) pair of an allocation list
- AllocationTree: the off-chain builder; assigns indices, exposes the root
  and per-index proofs
- MerkleVerifier: re-derives a leaf from a claim and checks it
- load_allocations / save_claims: allocation CSV/JSON in, claims JSON out
"""
from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union

from core.crypto.hashing import from_hex32, to_hex
from core.crypto.identity import Address
from core.merkle.leaf import RecipientLike, U64_MAX, claim_leaf
from core.merkle.merkle_tree import (
    MerkleProof,
    build_levels,
    proof_from_levels,
    verify_merkle_path,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationEntry:
    """One recipient and its allocated amount (base units)."""
    recipient: Address
    amount: int

    def __post_init__(self) -> None:
        if not isinstance(self.recipient, Address):
            object.__setattr__(self, "recipient", Address(bytes(self.recipient)))
        if self.amount < 0 or self.amount > U64_MAX:
            raise ValueError(f"amount must fit in u64, got {self.amount}")


class AllocationTree:
    """
    Merkle tree over an ordered allocation list.

    Entry i gets index i. Built once; proofs are read from the stored levels.

    Example:
        >>> tree = AllocationTree.from_entries([(alice, 1000), (bob, 2500)])
        >>> proof = tree.get_proof(1)
        >>> MerkleVerifier.verify_claim(tree.root, 1, bob, 2500, proof, len(tree))
        True
    """

    def __init__(self, entries: Sequence[AllocationEntry]) -> None:
        if not entries:
            raise ValueError("Allocation list is empty")
        self._entries: tuple[AllocationEntry, ...] = tuple(entries)
        leaves = [
            claim_leaf(i, entry.recipient, entry.amount)
            for i, entry in enumerate(self._entries)
        ]
        self._levels = build_levels(leaves)
        logger.debug(
            f"Built allocation tree: {len(self._entries)} leaves, "
            f"{len(self._levels) - 1} levels, root {to_hex(self.root)}"
        )

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[Union[AllocationEntry, tuple[RecipientLike, int]]],
    ) -> "AllocationTree":
        normalized = [
            e if isinstance(e, AllocationEntry) else AllocationEntry(*e)
            for e in entries
        ]
        return cls(normalized)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def root(self) -> bytes:
        return self._levels[-1][0]

    @property
    def leaves(self) -> tuple[bytes, ...]:
        return tuple(self._levels[0])

    @property
    def total_amount(self) -> int:
        return sum(e.amount for e in self._entries)

    def entry(self, index: int) -> AllocationEntry:
        return self._entries[index]

    def get_proof(self, index: int) -> tuple[bytes, ...]:
        """Sibling digests for `index`, leaf level first."""
        return proof_from_levels(self._levels, index)

    def merkle_proof(self, index: int) -> MerkleProof:
        return MerkleProof(
            leaf=self._levels[0][index],
            index=index,
            siblings=self.get_proof(index),
            root=self.root,
        )

    def index_of(self, recipient: Address) -> Optional[int]:
        """First index allocated to `recipient`, or None."""
        for i, entry in enumerate(self._entries):
            if entry.recipient == recipient:
                return i
        return None

    def to_claims_dict(self) -> dict[str, Any]:
        """Publishable claims file: root, total and one record per index."""
        return {
            "merkle_root": to_hex(self.root),
            "total_claims": len(self._entries),
            "token_total": self.total_amount,
            "claims": [
                {
                    "index": i,
                    "recipient": entry.recipient.to_hex(),
                    "amount": entry.amount,
                    "proof": [to_hex(p) for p in self.get_proof(i)],
                }
                for i, entry in enumerate(self._entries)
            ],
        }


class MerkleVerifier:
    """Static helpers to check a claim against a committed root."""

    @staticmethod
    def verify_claim(
        root: bytes,
        index: int,
        recipient: RecipientLike,
        amount: int,
        proof: Sequence[bytes],
        total_claims: Optional[int] = None,
    ) -> bool:
        """Re-derive the leaf for (index, recipient, amount) and verify it."""
        leaf = claim_leaf(index, recipient, amount)
        return verify_merkle_path(root, leaf, proof, index, total_claims)

    @staticmethod
    def verify(proof: MerkleProof, total_leaves: Optional[int] = None) -> bool:
        return verify_merkle_path(
            proof.root, proof.leaf, proof.siblings, proof.index, total_leaves
        )


def load_allocations(path: str | Path) -> list[AllocationEntry]:
    """
    Load an allocation list.

    CSV files need a header with `recipient,amount`; JSON files hold a list
    of {"recipient": "0x…", "amount": n} objects. Recipients are 0x-hex.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: On malformed rows or an empty list
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Allocation file not found: {path}")

    rows: list[tuple[str, Any]] = []
    if path.suffix.lower() == ".csv":
        with open(path, newline="") as f:
            reader = csv.DictReader(f)
            if not reader.fieldnames or not {"recipient", "amount"} <= set(reader.fieldnames):
                raise ValueError("CSV needs header: recipient,amount")
            for row in reader:
                recipient = (row.get("recipient") or "").strip()
                amount = (row.get("amount") or "").strip()
                if recipient and amount:
                    rows.append((recipient, amount))
    else:
        with open(path) as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError("JSON allocation file must contain a list")
        rows = [(item["recipient"], item["amount"]) for item in data]

    entries: list[AllocationEntry] = []
    for line, (recipient, amount) in enumerate(rows, start=1):
        amount_str = str(amount).strip()
        if not amount_str.isdigit():
            raise ValueError(f"Row {line}: amount must be a non-negative integer, got {amount!r}")
        entries.append(AllocationEntry(Address(from_hex32(recipient)), int(amount_str)))

    if not entries:
        raise ValueError(f"No valid rows in {path}")
    logger.info(f"Loaded {len(entries)} allocations from {path}")
    return entries


def save_claims(tree: AllocationTree, path: str | Path) -> Path:
    """Write the claims file produced by AllocationTree.to_claims_dict()."""
    path = Path(path)
    path.write_text(json.dumps(tree.to_claims_dict(), indent=2))
    return path


__all__ = [
    "AllocationEntry",
    "AllocationTree",
    "MerkleVerifier",
    "load_allocations",
    "save_claims",
]
