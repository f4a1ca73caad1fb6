"""
Test fixtures package for airdrop engine tests.

This package provides factory functions for creating test objects:
- airdrop_fixtures.py: allocations, trees, runtimes and initialized airdrops

Usage:
    from fixtures.airdrop_fixtures import make_airdrop

    def test_something():
        drop = make_airdrop()
        drop.claim(0)
"""

from .airdrop_fixtures import (
    BASE_AMOUNTS,
    DECIMALS,
    DEFAULT_NOW,
    SCENARIO_AMOUNTS,
    AirdropHarness,
    corrupt,
    make_address,
    make_airdrop,
    make_allocations,
    make_recipients,
    make_runtime,
    make_tree,
)

__all__ = [
    "BASE_AMOUNTS",
    "DECIMALS",
    "DEFAULT_NOW",
    "SCENARIO_AMOUNTS",
    "AirdropHarness",
    "corrupt",
    "make_address",
    "make_airdrop",
    "make_allocations",
    "make_recipients",
    "make_runtime",
    "make_tree",
]
