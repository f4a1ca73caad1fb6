"""
Token Ledger and Vault Custody

Fungible token balances held per (owner, mint) associated account, plus the
custody wrapper the airdrop program uses to pay claims out of the vault.

The vault is the associated token account of the vault authority, an
address derived from the snapshot hash. Only the program signs for it, so
tokens leave the vault only through VaultCustody.release.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Optional

from core.crypto.hashing import sha256
from core.crypto.identity import Address, Keypair
from core.schemas.errors import CustodyException

from .addressing import associated_token_address, vault_authority_address

if TYPE_CHECKING:
    from .runtime import Runtime


logger = logging.getLogger(__name__)


TOKEN_PROGRAM_ID = Address(sha256(b"token-program"))
MAX_DECIMALS = 18


@dataclass(frozen=True)
class Mint:
    address: Address
    decimals: int
    mint_authority: Address
    supply: int = 0


@dataclass(frozen=True)
class TokenAccount:
    address: Address
    mint: Address
    owner: Address
    amount: int = 0


class TokenLedger:
    """
    Mints and associated token accounts.

    Mutations must run inside the owning runtime's transaction so a failed
    operation restores balances along with everything else.
    """

    def __init__(self, runtime: "Runtime") -> None:
        self._runtime = runtime
        self._mints: dict[Address, Mint] = {}
        self._accounts: dict[Address, TokenAccount] = {}

    # --- snapshots ----------------------------------------------------------

    def snapshot(self) -> tuple[dict[Address, Mint], dict[Address, TokenAccount]]:
        return dict(self._mints), dict(self._accounts)

    def restore(self, snapshot: tuple[dict[Address, Mint], dict[Address, TokenAccount]]) -> None:
        self._mints, self._accounts = dict(snapshot[0]), dict(snapshot[1])

    # --- reads --------------------------------------------------------------

    def get_mint(self, mint: Address) -> Mint:
        try:
            return self._mints[mint]
        except KeyError:
            raise CustodyException(
                f"Unknown mint {mint}", details={"mint": mint.to_hex()}
            ) from None

    def associated_address(self, owner: Address, mint: Address) -> Address:
        return associated_token_address(owner, mint, TOKEN_PROGRAM_ID)

    def get_account(self, owner: Address, mint: Address) -> Optional[TokenAccount]:
        return self._accounts.get(self.associated_address(owner, mint))

    def balance_of(self, owner: Address, mint: Address) -> int:
        account = self.get_account(owner, mint)
        return account.amount if account else 0

    # --- mutations ----------------------------------------------------------

    def create_mint(self, mint_authority: Address, decimals: int) -> Address:
        if not 0 <= decimals <= MAX_DECIMALS:
            raise ValueError(f"decimals must be in [0, {MAX_DECIMALS}], got {decimals}")
        address = Keypair.generate().address
        with self._runtime.transaction():
            self._mints[address] = Mint(
                address=address, decimals=decimals, mint_authority=mint_authority
            )
        logger.info(f"Created mint {address} with {decimals} decimals")
        return address

    def get_or_create_account(self, owner: Address, mint: Address) -> TokenAccount:
        """Associated token account of `owner`, created empty if missing."""
        self.get_mint(mint)
        address = self.associated_address(owner, mint)
        with self._runtime.transaction():
            account = self._accounts.get(address)
            if account is None:
                account = TokenAccount(address=address, mint=mint, owner=owner)
                self._accounts[address] = account
                logger.debug(f"Created token account {address} for {owner}")
            return account

    def mint_to(self, mint: Address, owner: Address, amount: int, authority: Address) -> int:
        """Mint `amount` base units to the associated account of `owner`."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._runtime.transaction():
            info = self.get_mint(mint)
            if authority != info.mint_authority:
                raise CustodyException(
                    f"{authority} is not the mint authority of {mint}",
                    details={"mint": mint.to_hex(), "authority": authority.to_hex()},
                )
            account = self.get_or_create_account(owner, mint)
            self._mints[mint] = replace(info, supply=info.supply + amount)
            self._accounts[account.address] = replace(account, amount=account.amount + amount)
            return self._accounts[account.address].amount

    def transfer_checked(
        self,
        source_owner: Address,
        destination_owner: Address,
        mint: Address,
        amount: int,
        decimals: int,
        authority: Address,
    ) -> None:
        """
        Move `amount` base units between the associated accounts of two
        owners. The destination account is created if missing.

        Raises:
            CustodyException: On a wrong signer, a decimals mismatch, a
                missing source account or an insufficient balance
        """
        if amount < 0:
            raise ValueError("amount must be non-negative")
        with self._runtime.transaction():
            info = self.get_mint(mint)
            if decimals != info.decimals:
                raise CustodyException(
                    f"Decimals mismatch: mint has {info.decimals}, got {decimals}",
                    details={"mint": mint.to_hex(), "expected": info.decimals, "got": decimals},
                )
            if authority != source_owner:
                raise CustodyException(
                    f"{authority} may not move tokens owned by {source_owner}",
                    details={"owner": source_owner.to_hex(), "authority": authority.to_hex()},
                )
            source = self.get_account(source_owner, mint)
            if source is None or source.amount < amount:
                raise CustodyException(
                    f"Insufficient token balance in {self.associated_address(source_owner, mint)}",
                    details={
                        "owner": source_owner.to_hex(),
                        "balance": source.amount if source else 0,
                        "required": amount,
                    },
                )
            destination = self.get_or_create_account(destination_owner, mint)
            self._accounts[source.address] = replace(source, amount=source.amount - amount)
            destination = self._accounts[destination.address]
            self._accounts[destination.address] = replace(
                destination, amount=destination.amount + amount
            )


class VaultCustody:
    """The program's handle on per-snapshot vaults."""

    def __init__(self, tokens: TokenLedger, program_id: Address) -> None:
        self.tokens = tokens
        self.program_id = program_id

    def authority(self, snapshot_hash: bytes) -> Address:
        return vault_authority_address(snapshot_hash, self.program_id)

    def vault_address(self, snapshot_hash: bytes, mint: Address) -> Address:
        return self.tokens.associated_address(self.authority(snapshot_hash), mint)

    def balance(self, snapshot_hash: bytes, mint: Address) -> int:
        return self.tokens.balance_of(self.authority(snapshot_hash), mint)

    def fund(self, snapshot_hash: bytes, mint: Address, amount: int, mint_authority: Address) -> int:
        """Mint tokens straight into the vault; returns the new vault balance."""
        return self.tokens.mint_to(mint, self.authority(snapshot_hash), amount, mint_authority)

    def release(self, snapshot_hash: bytes, mint: Address, recipient: Address, amount: int) -> None:
        """Pay `amount` from the vault to the recipient's associated account."""
        info = self.tokens.get_mint(mint)
        vault_authority = self.authority(snapshot_hash)
        self.tokens.transfer_checked(
            source_owner=vault_authority,
            destination_owner=recipient,
            mint=mint,
            amount=amount,
            decimals=info.decimals,
            authority=vault_authority,
        )


__all__ = [
    "TOKEN_PROGRAM_ID",
    "Mint",
    "TokenAccount",
    "TokenLedger",
    "VaultCustody",
]
