"""
Runtime and Custody Unit Tests
Tests for airdrop/runtime.py and airdrop/token.py

Tests:
- Deposits charged on create and topped up on growth
- Transaction rollback restores accounts, token balances and events
- Closed addresses are retired
- Token ledger mint_to / transfer_checked / balance_of
- Vault custody release only through the vault authority
"""
import pytest

from airdrop import FixedClock, Runtime, VaultCustody
from core.config.runtime import EngineConfig
from core.crypto.hashing import sha256
from core.events.models import AirdropClosed
from core.schemas.errors import (
    AlreadyInitializedException,
    CustodyException,
    InsufficientFundsException,
    NotInitializedException,
    StateRetiredException,
)
from fixtures.airdrop_fixtures import make_address


PROGRAM = make_address("program")


@pytest.fixture
def funded(runtime):
    payer = make_address("payer")
    runtime.airdrop(payer, 10**9)
    return runtime, payer


class TestClock:
    def test_fixed_clock(self):
        clock = FixedClock(100)
        assert clock.now() == 100
        assert clock.advance(5) == 105
        clock.set(7)
        assert clock.now() == 7


class TestAccounts:
    """Account creation, deposits and closing."""

    def test_create_charges_deposit(self, funded):
        runtime, payer = funded
        address = make_address("acct")
        with runtime.transaction():
            runtime.create_account(address, owner=PROGRAM, data=b"\x01" * 10, payer=payer)

        deposit = runtime.minimum_balance(10)
        assert deposit == (128 + 10) * 3480 * 2
        assert runtime.get_balance(address) == deposit
        assert runtime.get_balance(payer) == 10**9 - deposit
        assert runtime.read_data(address) == b"\x01" * 10

    def test_create_twice_rejected(self, funded):
        runtime, payer = funded
        address = make_address("acct")
        with runtime.transaction():
            runtime.create_account(address, owner=PROGRAM, data=b"\x01", payer=payer)
        with pytest.raises(AlreadyInitializedException):
            with runtime.transaction():
                runtime.create_account(address, owner=PROGRAM, data=b"\x01", payer=payer)

    def test_growth_is_topped_up(self, funded):
        runtime, payer = funded
        address = make_address("acct")
        with runtime.transaction():
            runtime.create_account(address, owner=PROGRAM, data=b"\x00" * 4, payer=payer)
            runtime.write_data(address, b"\x00" * 8, payer=payer)
        assert runtime.get_balance(address) == runtime.minimum_balance(8)

    def test_lamports_alone_are_not_a_program_account(self, funded):
        runtime, payer = funded
        address = make_address("acct")
        runtime.airdrop(address, 5)

        assert runtime.account_exists(address)
        assert not runtime.is_program_account(address)

        with runtime.transaction():
            runtime.create_account(address, owner=PROGRAM, data=b"\x01", payer=payer)
        assert runtime.is_program_account(address)
        assert runtime.get_balance(address) == runtime.minimum_balance(1)

    def test_insufficient_funds(self, runtime):
        poor = make_address("poor")
        runtime.airdrop(poor, 1)
        with pytest.raises(InsufficientFundsException):
            with runtime.transaction():
                runtime.create_account(make_address("acct"), owner=PROGRAM, data=b"", payer=poor)
        assert not runtime.account_exists(make_address("acct"))
        assert runtime.get_balance(poor) == 1

    def test_close_retires_address(self, funded):
        runtime, payer = funded
        address = make_address("acct")
        recipient = make_address("recipient")
        with runtime.transaction():
            runtime.create_account(address, owner=PROGRAM, data=b"\x01", payer=payer)
        with runtime.transaction():
            moved = runtime.close_account(address, recipient)

        assert moved == runtime.minimum_balance(1)
        assert runtime.get_balance(recipient) == moved
        assert runtime.is_retired(address)
        with pytest.raises(NotInitializedException):
            runtime.read_data(address)
        with pytest.raises(StateRetiredException):
            with runtime.transaction():
                runtime.create_account(address, owner=PROGRAM, data=b"\x01", payer=payer)

    def test_mutation_requires_transaction(self, funded):
        runtime, payer = funded
        with pytest.raises(RuntimeError, match="outside of a transaction"):
            runtime.create_account(make_address("acct"), owner=PROGRAM, data=b"", payer=payer)

    def test_rent_config(self):
        config = EngineConfig.from_dict({"rent": {"lamports_per_byte": 1, "exemption_multiplier": 1}})
        runtime = Runtime(config)
        assert runtime.minimum_balance(72) == 200


class TestTransactions:
    """All-or-nothing behavior."""

    def test_rollback_restores_everything(self, funded):
        runtime, payer = funded
        address = make_address("acct")
        mint = runtime.tokens.create_mint(payer, decimals=0)

        with pytest.raises(ValueError, match="boom"):
            with runtime.transaction():
                runtime.create_account(address, owner=PROGRAM, data=b"\x01", payer=payer)
                runtime.tokens.mint_to(mint, payer, 50, authority=payer)
                runtime.events.stage(
                    AirdropClosed(state=address.to_hex(), timestamp=0, authority=payer.to_hex())
                )
                raise ValueError("boom")

        assert not runtime.account_exists(address)
        assert runtime.get_balance(payer) == 10**9
        assert runtime.tokens.balance_of(payer, mint) == 0
        assert len(runtime.events) == 0

    def test_commit_publishes_events(self, runtime):
        with runtime.transaction():
            runtime.events.stage(AirdropClosed(state="0x00", timestamp=1, authority="0x01"))
        records = runtime.events.get_records()
        assert len(records) == 1
        assert records[0].event_id.startswith("ev_airdrop_closed_")

    def test_nested_joins_outer(self, funded):
        runtime, payer = funded
        address = make_address("acct")
        with pytest.raises(KeyError):
            with runtime.transaction():
                with runtime.transaction():
                    runtime.create_account(address, owner=PROGRAM, data=b"", payer=payer)
                raise KeyError("outer fails")
        assert not runtime.account_exists(address)


class TestTokenLedger:
    """Mints and token accounts."""

    def test_mint_and_transfer(self, runtime):
        authority, alice, bob = make_address("mint"), make_address("alice"), make_address("bob")
        mint = runtime.tokens.create_mint(authority, decimals=4)

        runtime.tokens.mint_to(mint, alice, 1_000, authority=authority)
        runtime.tokens.transfer_checked(alice, bob, mint, 400, decimals=4, authority=alice)

        assert runtime.tokens.balance_of(alice, mint) == 600
        assert runtime.tokens.balance_of(bob, mint) == 400
        assert runtime.tokens.get_mint(mint).supply == 1_000

    def test_wrong_mint_authority(self, runtime):
        mint = runtime.tokens.create_mint(make_address("mint"), decimals=0)
        with pytest.raises(CustodyException, match="mint authority"):
            runtime.tokens.mint_to(mint, make_address("x"), 1, authority=make_address("x"))

    def test_decimals_mismatch(self, runtime):
        authority, alice = make_address("mint"), make_address("alice")
        mint = runtime.tokens.create_mint(authority, decimals=4)
        runtime.tokens.mint_to(mint, alice, 10, authority=authority)
        with pytest.raises(CustodyException, match="Decimals"):
            runtime.tokens.transfer_checked(alice, authority, mint, 1, decimals=6, authority=alice)

    def test_wrong_signer(self, runtime):
        authority, alice = make_address("mint"), make_address("alice")
        mint = runtime.tokens.create_mint(authority, decimals=0)
        runtime.tokens.mint_to(mint, alice, 10, authority=authority)
        with pytest.raises(CustodyException):
            runtime.tokens.transfer_checked(alice, authority, mint, 1, decimals=0, authority=authority)
        assert runtime.tokens.balance_of(alice, mint) == 10

    def test_insufficient_balance(self, runtime):
        authority, alice = make_address("mint"), make_address("alice")
        mint = runtime.tokens.create_mint(authority, decimals=0)
        with pytest.raises(CustodyException, match="Insufficient"):
            runtime.tokens.transfer_checked(alice, authority, mint, 1, decimals=0, authority=alice)

    def test_unknown_mint(self, runtime):
        assert runtime.tokens.balance_of(make_address("a"), make_address("nope")) == 0
        with pytest.raises(CustodyException, match="Unknown mint"):
            runtime.tokens.get_mint(make_address("nope"))


class TestVaultCustody:
    """Vault funding and release."""

    def test_release_moves_tokens(self, runtime):
        custody = VaultCustody(runtime.tokens, PROGRAM)
        snapshot = sha256(b"snap")
        mint_authority, wallet = make_address("mint"), make_address("wallet")
        mint = runtime.tokens.create_mint(mint_authority, decimals=2)

        assert custody.fund(snapshot, mint, 500, mint_authority) == 500
        custody.release(snapshot, mint, wallet, 120)

        assert custody.balance(snapshot, mint) == 380
        assert runtime.tokens.balance_of(wallet, mint) == 120
        assert custody.vault_address(snapshot, mint) == runtime.tokens.associated_address(
            custody.authority(snapshot), mint
        )

    def test_vaults_are_per_snapshot(self, runtime):
        custody = VaultCustody(runtime.tokens, PROGRAM)
        mint_authority = make_address("mint")
        mint = runtime.tokens.create_mint(mint_authority, decimals=0)
        custody.fund(sha256(b"a"), mint, 10, mint_authority)

        with pytest.raises(CustodyException):
            custody.release(sha256(b"b"), mint, make_address("wallet"), 1)
