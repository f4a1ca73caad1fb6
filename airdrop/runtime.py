"""
Host Runtime

In-process stand-in for the execution environment the program runs in:

- an account store: address -> (lamports, data, owner)
- storage deposits: an account must hold minimum_balance(len(data)) lamports
- a clock
- the token ledger (vault custody)
- transaction(): one operation at a time, all-or-nothing

Inside a transaction every change to accounts, token balances and events is
provisional. If the body raises, accounts and token balances are restored
from the snapshot taken on entry and staged events are dropped.
"""
from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Protocol

from core.config.runtime import EngineConfig
from core.crypto.hashing import sha256
from core.crypto.identity import Address
from core.events.recorder import EventRecorder
from core.schemas.errors import (
    AlreadyInitializedException,
    InsufficientFundsException,
    NotInitializedException,
    StateRetiredException,
)

from .token import TokenLedger


logger = logging.getLogger(__name__)


SYSTEM_PROGRAM_ID = Address(bytes(32))


@dataclass(frozen=True)
class Account:
    lamports: int
    data: bytes = b""
    owner: Address = SYSTEM_PROGRAM_ID


class Clock(Protocol):
    def now(self) -> int:
        """Current unix time in seconds."""
        ...


class SystemClock:
    def now(self) -> int:
        return int(time.time())


class FixedClock:
    """Manually driven clock for tests and simulations."""

    def __init__(self, start: Optional[int] = None) -> None:
        self._now = int(time.time()) if start is None else start

    def now(self) -> int:
        return self._now

    def set(self, ts: int) -> None:
        self._now = ts

    def advance(self, seconds: int) -> int:
        self._now += seconds
        return self._now


class Runtime:
    """
    Account store with serialized, atomic transactions.

    Usage:
        runtime = Runtime(config, clock=FixedClock(1_700_000_000))
        runtime.airdrop(payer, 10**9)
        with runtime.transaction():
            runtime.create_account(addr, owner, data, payer=payer)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.clock: Clock = clock or SystemClock()
        self.events = EventRecorder()
        self.tokens = TokenLedger(self)
        self._accounts: dict[Address, Account] = {}
        self._retired: set[Address] = set()
        self._lock = threading.RLock()
        self._depth = 0

    # --- reads --------------------------------------------------------------

    def now(self) -> int:
        return self.clock.now()

    def get_account(self, address: Address) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(address)

    def account_exists(self, address: Address) -> bool:
        return self.get_account(address) is not None

    def is_program_account(self, address: Address) -> bool:
        """True once a program has allocated the address; lamports alone do not count."""
        account = self.get_account(address)
        return account is not None and account.owner != SYSTEM_PROGRAM_ID

    def is_retired(self, address: Address) -> bool:
        with self._lock:
            return address in self._retired

    def get_balance(self, address: Address) -> int:
        account = self.get_account(address)
        return account.lamports if account else 0

    def minimum_balance(self, data_len: int) -> int:
        return self.config.rent.minimum_balance(data_len)

    # --- transactions -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["Runtime"]:
        """
        Run the body as one atomic operation.

        Nested transactions join the outermost one.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            accounts = dict(self._accounts)
            retired = set(self._retired)
            tokens = self.tokens.snapshot()
            self._depth = 1
            try:
                yield self
            except BaseException:
                self._accounts = accounts
                self._retired = retired
                self.tokens.restore(tokens)
                self.events.discard()
                logger.debug("Transaction rolled back")
                raise
            else:
                self.events.commit()
            finally:
                self._depth = 0

    def _require_txn(self) -> None:
        if not self._depth:
            raise RuntimeError("Account mutation outside of a transaction")

    # --- lamports -----------------------------------------------------------

    def airdrop(self, address: Address, lamports: int) -> int:
        """Credit native balance from outside the program (faucet)."""
        if lamports < 0:
            raise ValueError("lamports must be non-negative")
        with self.transaction():
            account = self._accounts.get(address, Account(lamports=0))
            self._accounts[address] = replace(account, lamports=account.lamports + lamports)
            return self._accounts[address].lamports

    def transfer_lamports(self, source: Address, destination: Address, lamports: int) -> None:
        self._require_txn()
        if lamports < 0:
            raise ValueError("lamports must be non-negative")
        src = self._accounts.get(source)
        if src is None or src.lamports < lamports:
            raise InsufficientFundsException(
                f"Account {source} cannot pay {lamports} lamports",
                details={
                    "account": source.to_hex(),
                    "balance": src.lamports if src else 0,
                    "required": lamports,
                },
            )
        self._accounts[source] = replace(src, lamports=src.lamports - lamports)
        dst = self._accounts.get(destination, Account(lamports=0))
        self._accounts[destination] = replace(dst, lamports=dst.lamports + lamports)

    # --- program accounts ---------------------------------------------------

    def create_account(
        self,
        address: Address,
        owner: Address,
        data: bytes,
        payer: Address,
    ) -> Account:
        """
        Allocate a program account funded by `payer`.

        Raises:
            StateRetiredException: If the address was closed before
            AlreadyInitializedException: If data already lives at the address
            InsufficientFundsException: If payer cannot cover the deposit
        """
        self._require_txn()
        if address in self._retired:
            raise StateRetiredException(
                f"Address {address} was closed and cannot be reused",
                details={"address": address.to_hex()},
            )
        existing = self._accounts.get(address)
        if existing is not None and (existing.data or existing.owner != SYSTEM_PROGRAM_ID):
            raise AlreadyInitializedException(
                f"Account {address} already initialized",
                details={"address": address.to_hex()},
            )
        deposit = self.minimum_balance(len(data))
        held = existing.lamports if existing else 0
        self._accounts[address] = Account(lamports=held, data=b"", owner=owner)
        if held < deposit:
            self.transfer_lamports(payer, address, deposit - held)
        self._accounts[address] = replace(self._accounts[address], data=bytes(data))
        logger.debug(f"Created account {address} ({len(data)} bytes, deposit {deposit})")
        return self._accounts[address]

    def read_data(self, address: Address) -> bytes:
        """
        Raises:
            NotInitializedException: If nothing lives at the address
        """
        account = self.get_account(address)
        if account is None or account.owner == SYSTEM_PROGRAM_ID:
            raise NotInitializedException(
                f"Account {address} does not exist",
                details={"address": address.to_hex(), "retired": self.is_retired(address)},
            )
        return account.data

    def write_data(self, address: Address, data: bytes, payer: Address) -> None:
        """
        Replace account data; `payer` tops up the deposit if the data grew.
        """
        self._require_txn()
        account = self._accounts.get(address)
        if account is None:
            raise NotInitializedException(
                f"Account {address} does not exist",
                details={"address": address.to_hex()},
            )
        required = self.minimum_balance(len(data))
        if account.lamports < required:
            self.transfer_lamports(payer, address, required - account.lamports)
            account = self._accounts[address]
        self._accounts[address] = replace(account, data=bytes(data))

    def close_account(self, address: Address, recipient: Address) -> int:
        """
        Move every lamport to `recipient`, erase the account and retire the
        address. Returns the lamports moved.
        """
        self._require_txn()
        account = self._accounts.get(address)
        if account is None:
            raise NotInitializedException(
                f"Account {address} does not exist",
                details={"address": address.to_hex()},
            )
        reclaimed = account.lamports
        self.transfer_lamports(address, recipient, reclaimed)
        del self._accounts[address]
        self._retired.add(address)
        logger.debug(f"Closed account {address}; {reclaimed} lamports to {recipient}")
        return reclaimed


def program_id_from_config(config: EngineConfig) -> Address:
    """Program identity from config; non-hex names are hashed into an address."""
    value = config.program.program_id
    if value.startswith("0x"):
        return Address.from_hex(value)
    return Address(sha256(value.encode("utf-8")))


__all__ = [
    "SYSTEM_PROGRAM_ID",
    "Account",
    "Clock",
    "SystemClock",
    "FixedClock",
    "Runtime",
    "program_id_from_config",
]
