"""
Module 02 - Merkle Tree and Commitments
Deterministic allocation commitments + proof generation/verification.

Canonical Commitment Rules:
1. Leaf hashing: keccak256(u64_le(index) + recipient + u64_le(amount))
2. Parent hashing: keccak256(min(a, b) + max(a, b))
3. Odd node: promoted unchanged, no proof element
4. Single leaf: root = leaf

Usage:
    from core.merkle import AllocationTree, MerkleVerifier

    tree = AllocationTree.from_entries([(alice, 1000), (bob, 2500)])
    proof = tree.get_proof(1)
    assert MerkleVerifier.verify_claim(tree.root, 1, bob, 2500, proof, len(tree))
"""
from .leaf import claim_leaf, encode_leaf_preimage

from .merkle_tree import (
    MerkleProof,
    merkle_parent,
    build_levels,
    build_merkle_root,
    build_merkle_proof,
    proof_from_levels,
    expected_proof_length,
    compute_tree_depth,
    compute_root,
    verify_merkle_path,
    verify_merkle_proof,
)

from .merkle_proofs import (
    AllocationEntry,
    AllocationTree,
    MerkleVerifier,
    load_allocations,
    save_claims,
)


__all__ = [
    # Leaves
    "claim_leaf",
    "encode_leaf_preimage",
    # Core types
    "MerkleProof",
    # Core functions
    "merkle_parent",
    "build_levels",
    "build_merkle_root",
    "build_merkle_proof",
    "proof_from_levels",
    "expected_proof_length",
    "compute_tree_depth",
    "compute_root",
    "verify_merkle_path",
    "verify_merkle_proof",
    # Builder and verifier
    "AllocationEntry",
    "AllocationTree",
    "MerkleVerifier",
    "load_allocations",
    "save_claims",
]
