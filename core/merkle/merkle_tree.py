"""
Module 02 - Merkle Tree Implementation
Deterministic Merkle tree construction, proof generation, and verification.

Canonical Commitment Rules (Hard Contracts):
1. Leaf hashing: see core.merkle.leaf.claim_leaf
2. Parent hashing: parent = keccak256(min(a, b) + max(a, b))
   - children are ordered by raw byte value, not by position
3. Odd node rule: an unmatched last node is promoted unchanged to the
   next level and contributes no proof element
4. Empty leaves: building a tree over no leaves is an error
5. Single leaf: root = leaf, proof = ()

Determinism Notes:
- Leaf ordering is the allocation order; this module never sorts leaves
- Because pairs are sorted before hashing, verification needs only the
  sibling digests; the index is used to check the proof length
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from core.crypto.hashing import DIGEST_SIZE, hash_pair


@dataclass(frozen=True)
class MerkleProof:
    """
    A Merkle proof for a single leaf in a Merkle tree.

    Attributes:
        leaf: The leaf hash being proven
        index: The 0-based index of the leaf in the original leaf list
        siblings: Sibling hashes from bottom to top of tree
        root: The Merkle root this proof is against
    """
    leaf: bytes
    index: int
    siblings: tuple[bytes, ...]
    root: bytes

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.index}")
        object.__setattr__(self, "siblings", tuple(self.siblings))


def merkle_parent(a: bytes, b: bytes) -> bytes:
    """Parent of two nodes; argument order does not matter."""
    return hash_pair(a, b)


def build_levels(leaves: Sequence[bytes]) -> list[list[bytes]]:
    """
    Build every level of the tree, leaves first, root level last.

    Example: [a, b, c] -> [[a, b, c], [ab, c], [abc]]  (c promoted)

    Raises:
        ValueError: If leaves is empty
    """
    if len(leaves) == 0:
        raise ValueError("Cannot build a Merkle tree from an empty leaf list")

    levels: list[list[bytes]] = [list(leaves)]
    current = levels[0]

    while len(current) > 1:
        next_level: list[bytes] = []
        for i in range(0, len(current), 2):
            if i + 1 < len(current):
                next_level.append(merkle_parent(current[i], current[i + 1]))
            else:
                # odd node out: promote unchanged
                next_level.append(current[i])
        levels.append(next_level)
        current = next_level

    return levels


def build_merkle_root(leaves: Sequence[bytes]) -> bytes:
    """
    Build a Merkle root from a sequence of leaf hashes.

    Raises:
        ValueError: If leaves is empty
    """
    return build_levels(leaves)[-1][0]


def proof_from_levels(levels: Sequence[Sequence[bytes]], index: int) -> tuple[bytes, ...]:
    """
    Collect the sibling path for `index` from prebuilt levels.

    Levels where the node at the current position has no sibling (promotion)
    contribute nothing.
    """
    if index < 0 or index >= len(levels[0]):
        raise IndexError(
            f"Leaf index {index} out of range for {len(levels[0])} leaves"
        )

    siblings: list[bytes] = []
    position = index
    for level in levels[:-1]:
        sibling_index = position ^ 1
        if sibling_index < len(level):
            siblings.append(level[sibling_index])
        position //= 2
    return tuple(siblings)


def build_merkle_proof(leaves: Sequence[bytes], index: int) -> MerkleProof:
    """
    Generate a Merkle proof for the leaf at the given index.

    Raises:
        IndexError: If index is out of range
        ValueError: If leaves is empty
    """
    levels = build_levels(leaves)
    siblings = proof_from_levels(levels, index)
    return MerkleProof(
        leaf=levels[0][index],
        index=index,
        siblings=siblings,
        root=levels[-1][0],
    )


def expected_proof_length(index: int, total_leaves: int) -> int:
    """
    Exact number of siblings on the path of `index` in a tree of
    `total_leaves` leaves under the promotion rule.

    Example: with 5 leaves, indices 0-3 need 3 siblings, index 4 needs 1.

    Raises:
        IndexError: If index is not in [0, total_leaves)
    """
    if index < 0 or index >= total_leaves:
        raise IndexError(
            f"Leaf index {index} out of range for {total_leaves} leaves"
        )
    length = 0
    position = index
    size = total_leaves
    while size > 1:
        if (position ^ 1) < size:
            length += 1
        position //= 2
        size = (size + 1) // 2
    return length


def compute_tree_depth(num_leaves: int) -> int:
    """
    Number of hashing levels above the leaves (ceil(log2(n))).

    This is the longest proof any leaf can have; 0 for a single leaf.
    """
    if num_leaves <= 0:
        raise ValueError(f"num_leaves must be positive, got {num_leaves}")
    return (num_leaves - 1).bit_length()


def compute_root(leaf: bytes, siblings: Sequence[bytes]) -> bytes:
    """Fold a sibling path onto a leaf and return the candidate root."""
    current = leaf
    for sibling in siblings:
        current = merkle_parent(current, sibling)
    return current


def verify_merkle_path(
    root: bytes,
    leaf: bytes,
    siblings: Sequence[bytes],
    index: int,
    total_leaves: Optional[int] = None,
) -> bool:
    """
    Check that `leaf` at `index` is committed to by `root`.

    Args:
        root: Committed root
        leaf: Leaf digest re-derived by the caller
        siblings: Sibling digests, leaf level first
        index: Claimed leaf index
        total_leaves: If given, the path length must match
            expected_proof_length(index, total_leaves)

    Returns:
        True if the proof is valid, False otherwise
    """
    if index < 0:
        return False
    if any(len(s) != DIGEST_SIZE for s in siblings):
        return False
    if total_leaves is not None:
        if index >= total_leaves:
            return False
        if len(siblings) != expected_proof_length(index, total_leaves):
            return False
    return compute_root(leaf, siblings) == root


def verify_merkle_proof(proof: MerkleProof, total_leaves: Optional[int] = None) -> bool:
    """Verify a MerkleProof against its own root."""
    return verify_merkle_path(
        proof.root, proof.leaf, proof.siblings, proof.index, total_leaves
    )


__all__ = [
    "MerkleProof",
    "merkle_parent",
    "build_levels",
    "build_merkle_root",
    "proof_from_levels",
    "build_merkle_proof",
    "expected_proof_length",
    "compute_tree_depth",
    "compute_root",
    "verify_merkle_path",
    "verify_merkle_proof",
]
