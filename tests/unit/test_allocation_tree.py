"""
Allocation Tree Unit Tests
Tests for core/merkle/merkle_proofs.py

Tests:
- AllocationTree index assignment, root and proofs
- MerkleVerifier.verify_claim against the committed root
- load_allocations from CSV and JSON
- save_claims output
"""
import json

import pytest

from core.crypto.identity import Address
from core.merkle import (
    AllocationEntry,
    AllocationTree,
    MerkleVerifier,
    build_merkle_root,
    claim_leaf,
    load_allocations,
    save_claims,
)
from fixtures.airdrop_fixtures import SCENARIO_AMOUNTS, make_allocations, make_recipients


class TestAllocationTree:
    """Tests for the off-chain tree builder."""

    def test_indices_follow_input_order(self):
        allocations = make_allocations()
        tree = AllocationTree.from_entries(allocations)

        assert len(tree) == 10
        for i, (recipient, amount) in enumerate(allocations):
            assert tree.entry(i) == AllocationEntry(recipient, amount)

    def test_root_matches_leaf_hashes(self):
        allocations = make_allocations()
        tree = AllocationTree.from_entries(allocations)
        leaves = [claim_leaf(i, r, a) for i, (r, a) in enumerate(allocations)]

        assert tree.leaves == tuple(leaves)
        assert tree.root == build_merkle_root(leaves)

    def test_total_amount(self):
        tree = AllocationTree.from_entries(make_allocations())
        assert tree.total_amount == sum(SCENARIO_AMOUNTS)

    def test_every_claim_verifies(self):
        allocations = make_allocations()
        tree = AllocationTree.from_entries(allocations)
        for i, (recipient, amount) in enumerate(allocations):
            assert MerkleVerifier.verify_claim(
                tree.root, i, recipient, amount, tree.get_proof(i), len(tree)
            )

    def test_wrong_amount_fails(self):
        allocations = make_allocations()
        tree = AllocationTree.from_entries(allocations)
        recipient, amount = allocations[2]
        assert not MerkleVerifier.verify_claim(
            tree.root, 2, recipient, amount + 1, tree.get_proof(2), len(tree)
        )

    def test_wrong_recipient_fails(self):
        allocations = make_allocations()
        tree = AllocationTree.from_entries(allocations)
        _, amount = allocations[2]
        other = allocations[3][0]
        assert not MerkleVerifier.verify_claim(
            tree.root, 2, other, amount, tree.get_proof(2), len(tree)
        )

    def test_merkle_proof_object(self):
        tree = AllocationTree.from_entries(make_allocations())
        proof = tree.merkle_proof(5)
        assert proof.root == tree.root
        assert MerkleVerifier.verify(proof, len(tree))

    def test_index_of(self):
        recipients = make_recipients(3)
        tree = AllocationTree.from_entries([(r, 1) for r in recipients])
        assert tree.index_of(recipients[2]) == 2
        assert tree.index_of(Address(b"\x00" * 32)) is None

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            AllocationTree.from_entries([])

    def test_amount_must_fit_u64(self):
        with pytest.raises(ValueError, match="u64"):
            AllocationEntry(Address(b"\x01" * 32), 2**64)


class TestAllocationFiles:
    """Tests for load_allocations/save_claims."""

    def test_load_csv(self, tmp_path):
        recipients = make_recipients(2)
        path = tmp_path / "allocations.csv"
        path.write_text(
            "recipient,amount\n"
            f"{recipients[0].to_hex()},100\n"
            f"{recipients[1].to_hex()},250\n"
        )

        entries = load_allocations(path)

        assert entries == [
            AllocationEntry(recipients[0], 100),
            AllocationEntry(recipients[1], 250),
        ]

    def test_load_json(self, tmp_path):
        recipients = make_recipients(2)
        path = tmp_path / "allocations.json"
        path.write_text(json.dumps([
            {"recipient": recipients[0].to_hex(), "amount": 7},
            {"recipient": recipients[1].to_hex(), "amount": "8"},
        ]))

        entries = load_allocations(path)

        assert [e.amount for e in entries] == [7, 8]

    def test_csv_without_header_rejected(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("0x00,1\n")
        with pytest.raises(ValueError, match="header"):
            load_allocations(path)

    def test_negative_amount_rejected(self, tmp_path):
        recipient = make_recipients(1)[0]
        path = tmp_path / "neg.csv"
        path.write_text(f"recipient,amount\n{recipient.to_hex()},-5\n")
        with pytest.raises(ValueError, match="non-negative"):
            load_allocations(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_allocations(tmp_path / "nope.csv")

    def test_save_claims(self, tmp_path):
        tree = AllocationTree.from_entries(make_allocations())
        path = save_claims(tree, tmp_path / "claims.json")
        data = json.loads(path.read_text())

        assert data["merkle_root"] == "0x" + tree.root.hex()
        assert data["total_claims"] == 10
        assert data["claims"][4]["amount"] == SCENARIO_AMOUNTS[4]
        assert len(data["claims"][4]["proof"]) == len(tree.get_proof(4))
