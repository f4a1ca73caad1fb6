"""
Airdrop Program

The claim state machine and its administrative surface:

    Uninitialized -> Open -> (Open <-> Open via admin updates) -> Closed -> Destroyed

Each public operation runs inside Runtime.transaction(): it decodes the
state account, checks its preconditions, writes the state back, moves
tokens and stages one event. Any raised exception rolls all of it back.

Claim checks run in this order:
    NotInitialized, ClaimClosed, ClaimWindowNotStarted / ClaimWindowClosed,
    IndexOutOfRange, InvalidProof, AlreadyClaimed, then the vault transfer.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.config.runtime import EngineConfig
from core.crypto.hashing import DIGEST_SIZE, to_hex
from core.crypto.identity import Address
from core.events.models import (
    AirdropClosed,
    AirdropInitialized,
    Claimed,
    ClaimWindowUpdated,
    MerkleRootUpdated,
    StateClosed,
)
from core.ledger import MarkResult, new_ledger
from core.merkle.leaf import claim_leaf
from core.merkle.merkle_tree import verify_merkle_path
from core.schemas.errors import (
    AlreadyClaimedException,
    ClaimClosedException,
    ClaimWindowClosedException,
    ClaimWindowNotStartedException,
    IndexOutOfRangeException,
    InvalidDurationException,
    InvalidProofException,
    InvalidTotalClaimsException,
    SchemaValidationException,
    UnauthorizedException,
)
from core.schemas.requests import I64_MAX, ClaimRequest, RootUpdate, WindowUpdate

from .addressing import state_address
from .runtime import Runtime, program_id_from_config
from .state import AirdropState, Phase, WindowStatus
from .token import VaultCustody


logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


class ClaimReceipt(BaseModel):
    """Result of a successful claim."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    state: str = Field(..., description="State address (0x-hex)")
    wallet: str = Field(..., description="Recipient address (0x-hex)")
    index: int
    amount: int
    leaf: str = Field(..., description="Re-derived claim leaf (0x-hex)")
    timestamp: int
    vault_balance: int = Field(..., description="Vault balance after the transfer")


def _validated(model: Type[_M], **values: Any) -> _M:
    try:
        return model(**values)
    except ValidationError as e:
        first = e.errors()[0]
        raise SchemaValidationException(
            f"Invalid {model.__name__}: {first['msg']}",
            field_path=".".join(str(p) for p in first["loc"]),
            details={"errors": len(e.errors())},
        ) from e


def _check_duration(start_ts: int, duration: int) -> None:
    if duration <= 0:
        raise InvalidDurationException(
            f"Claim duration must be positive, got {duration}",
            details={"duration": duration},
        )
    if start_ts + duration > I64_MAX:
        raise InvalidDurationException(
            "Claim window end does not fit in a signed 64-bit timestamp",
            details={"start_ts": start_ts, "duration": duration},
        )


class AirdropProgram:
    """
    Merkle airdrop engine bound to a runtime.

    Usage:
        program = AirdropProgram(runtime)
        state = program.initialize(authority, snapshot_hash, tree.root,
                                   start_ts, 300, len(tree))
        program.fund_vault(snapshot_hash, mint, tree.total_amount, mint_authority)
        receipt = program.claim(state, wallet, i, amount, tree.get_proof(i), mint=mint)
    """

    def __init__(self, runtime: Runtime, config: Optional[EngineConfig] = None) -> None:
        self.runtime = runtime
        self.config = config or runtime.config
        self.program_id = program_id_from_config(self.config)
        self.custody = VaultCustody(runtime.tokens, self.program_id)

    # --- addressing ---------------------------------------------------------

    def state_address(self, snapshot_hash: bytes) -> Address:
        return state_address(snapshot_hash, self.program_id)

    def vault_authority(self, snapshot_hash: bytes) -> Address:
        return self.custody.authority(snapshot_hash)

    def vault_address(self, snapshot_hash: bytes, mint: Address) -> Address:
        return self.custody.vault_address(snapshot_hash, mint)

    def fund_vault(
        self,
        snapshot_hash: bytes,
        mint: Address,
        amount: int,
        mint_authority: Address,
    ) -> int:
        """Mint the allocation into the vault of a snapshot."""
        balance = self.custody.fund(snapshot_hash, mint, amount, mint_authority)
        logger.info(f"Funded vault for snapshot {to_hex(snapshot_hash)[:12]}: {balance}")
        return balance

    # --- reads --------------------------------------------------------------

    def fetch_state(self, state: Address) -> AirdropState:
        """
        Raises:
            NotInitializedException: If no state lives at the address
        """
        return AirdropState.from_bytes(self.runtime.read_data(state))

    def phase(self, state: Address) -> Phase:
        if self.runtime.is_retired(state):
            return Phase.DESTROYED
        if not self.runtime.is_program_account(state):
            return Phase.UNINITIALIZED
        return self.fetch_state(state).phase

    def has_claimed(self, state: Address, index: int) -> bool:
        return self.fetch_state(state).has_claimed(index)

    # --- internals ----------------------------------------------------------

    def _check_total_claims(self, total_claims: int) -> None:
        limit = self.config.ledger.max_claims
        if total_claims > limit:
            raise InvalidTotalClaimsException(
                f"total_claims {total_claims} exceeds the supported maximum {limit}",
                details={"total_claims": total_claims, "max_claims": limit},
            )

    def _load_for_admin(self, state: Address, authority: Address) -> AirdropState:
        current = self.fetch_state(state)
        if authority != current.authority:
            logger.warning(f"Rejected admin call on {state} from {authority}")
            raise UnauthorizedException(caller=authority.to_hex())
        return current

    def _emit(self, event_type, state: Address, **fields: Any) -> None:
        self.runtime.events.stage(
            event_type(state=state.to_hex(), timestamp=self.runtime.now(), **fields)
        )

    # --- operations ---------------------------------------------------------

    def initialize(
        self,
        authority: Address,
        snapshot_hash: bytes,
        merkle_root: bytes,
        claim_start_ts: int,
        claim_duration: int,
        total_claims: int,
    ) -> Address:
        """
        Create the state for a snapshot. The authority pays the deposit.

        Returns:
            The derived state address

        Raises:
            AlreadyInitializedException: If the snapshot already has a state
            StateRetiredException: If the snapshot's state was destroyed
            InvalidDurationException: If claim_duration is not positive
            InvalidTotalClaimsException: If total_claims exceeds the maximum
        """
        if len(snapshot_hash) != DIGEST_SIZE:
            raise SchemaValidationException(
                f"snapshot_hash must be {DIGEST_SIZE} bytes", field_path="snapshot_hash"
            )
        window = _validated(WindowUpdate, start_ts=claim_start_ts, duration=claim_duration)
        root = _validated(RootUpdate, merkle_root=merkle_root, total_claims=total_claims)
        _check_duration(window.start_ts, window.duration)
        self._check_total_claims(root.total_claims)

        address = self.state_address(snapshot_hash)
        ledger_config = self.config.ledger
        state = AirdropState(
            authority=authority,
            snapshot_hash=bytes(snapshot_hash),
            claim_start_ts=window.start_ts,
            claim_duration=window.duration,
            claim_closed=False,
            merkle_root=root.merkle_root,
            total_claims=root.total_claims,
            ledger=new_ledger(
                ledger_config.ledger_kind,
                capacity=root.total_claims,
                moduli=ledger_config.moduli,
            ),
        )
        with self.runtime.transaction():
            self.runtime.create_account(
                address, owner=self.program_id, data=state.to_bytes(), payer=authority
            )
            self._emit(
                AirdropInitialized,
                address,
                authority=authority.to_hex(),
                snapshot_hash=to_hex(state.snapshot_hash),
                merkle_root=to_hex(state.merkle_root),
                claim_start_ts=state.claim_start_ts,
                claim_duration=state.claim_duration,
                total_claims=state.total_claims,
            )
        logger.info(
            f"Initialized airdrop {address}: {state.total_claims} claims, "
            f"window [{state.claim_start_ts}, {state.claim_end_ts})"
        )
        return address

    def claim(
        self,
        state: Address,
        wallet: Address,
        index: int,
        amount: int,
        proof: Sequence[bytes],
        *,
        mint: Address,
    ) -> ClaimReceipt:
        """
        Claim allocation `index` for `wallet` and pay it out of the vault.

        The wallet signs, pays any ledger growth deposit and receives the
        tokens in its associated token account for `mint`.

        The state does not record a mint: the payout comes from whichever
        mint the claimant names, out of the snapshot's vault for that mint.
        The index is spent either way, so an allocation pays once across
        all mints. Fund only one mint per snapshot vault.
        """
        request = _validated(ClaimRequest, index=index, amount=amount, proof=proof)

        with self.runtime.transaction():
            current = self.fetch_state(state)
            now = self.runtime.now()

            if current.claim_closed:
                raise ClaimClosedException(
                    "Airdrop is closed", details={"state": state.to_hex()}
                )
            status = current.window_status(now)
            if status is WindowStatus.NOT_STARTED:
                raise ClaimWindowNotStartedException(
                    "Claim window has not started",
                    now=now, start=current.claim_start_ts, end=current.claim_end_ts,
                )
            if status is WindowStatus.ENDED:
                raise ClaimWindowClosedException(
                    "Claim window is closed",
                    now=now, start=current.claim_start_ts, end=current.claim_end_ts,
                )
            if request.index >= current.total_claims:
                raise IndexOutOfRangeException(
                    f"Index {request.index} is not below total_claims {current.total_claims}",
                    index=request.index,
                )

            leaf = claim_leaf(request.index, wallet, request.amount)
            if not verify_merkle_path(
                current.merkle_root,
                leaf,
                request.proof,
                request.index,
                total_leaves=current.total_claims,
            ):
                raise InvalidProofException(
                    f"Proof does not match the root for index {request.index}",
                    index=request.index,
                )

            if current.ledger.mark_claimed(request.index) is MarkResult.ALREADY_CLAIMED:
                raise AlreadyClaimedException(
                    f"Index {request.index} has already claimed", index=request.index
                )

            self.runtime.write_data(state, current.to_bytes(), payer=wallet)
            self.custody.release(current.snapshot_hash, mint, wallet, request.amount)
            self._emit(
                Claimed, state, wallet=wallet.to_hex(), index=request.index, amount=request.amount
            )
            vault_balance = self.custody.balance(current.snapshot_hash, mint)

        logger.info(f"Claim {request.index} paid {request.amount} to {wallet}")
        return ClaimReceipt(
            state=state.to_hex(),
            wallet=wallet.to_hex(),
            index=request.index,
            amount=request.amount,
            leaf=to_hex(leaf),
            timestamp=now,
            vault_balance=vault_balance,
        )

    def update_claim_window(
        self,
        state: Address,
        authority: Address,
        new_start_ts: int,
        new_duration: int,
    ) -> None:
        """Replace the claim window. Rejected once the airdrop is closed."""
        window = _validated(WindowUpdate, start_ts=new_start_ts, duration=new_duration)
        with self.runtime.transaction():
            current = self._load_for_admin(state, authority)
            if current.claim_closed:
                raise ClaimClosedException(
                    "Cannot change the window of a closed airdrop",
                    details={"state": state.to_hex()},
                )
            _check_duration(window.start_ts, window.duration)
            current.claim_start_ts = window.start_ts
            current.claim_duration = window.duration
            self.runtime.write_data(state, current.to_bytes(), payer=authority)
            self._emit(
                ClaimWindowUpdated,
                state,
                new_start_ts=window.start_ts,
                new_duration=window.duration,
            )
        logger.info(
            f"Window of {state} set to [{window.start_ts}, {window.start_ts + window.duration})"
        )

    def update_merkle_root(
        self,
        state: Address,
        authority: Address,
        new_root: bytes,
        new_total_claims: int,
    ) -> None:
        """
        Replace the committed root and claim count. The claimed ledger is
        kept as is; indices marked under the old root stay marked.
        """
        update = _validated(RootUpdate, merkle_root=new_root, total_claims=new_total_claims)
        with self.runtime.transaction():
            current = self._load_for_admin(state, authority)
            if current.claim_closed:
                raise ClaimClosedException(
                    "Cannot change the root of a closed airdrop",
                    details={"state": state.to_hex()},
                )
            self._check_total_claims(update.total_claims)
            current.merkle_root = update.merkle_root
            current.total_claims = update.total_claims
            current.ledger.ensure_capacity(update.total_claims)
            self.runtime.write_data(state, current.to_bytes(), payer=authority)
            self._emit(
                MerkleRootUpdated,
                state,
                new_root=to_hex(update.merkle_root),
                new_total_claims=update.total_claims,
            )
        logger.info(f"Root of {state} set to {to_hex(update.merkle_root)} ({update.total_claims} claims)")

    def close_airdrop(self, state: Address, authority: Address) -> None:
        """Permanently stop claims. Closing a closed airdrop is a no-op."""
        with self.runtime.transaction():
            current = self._load_for_admin(state, authority)
            if current.claim_closed:
                logger.debug(f"Airdrop {state} already closed")
                return
            current.claim_closed = True
            self.runtime.write_data(state, current.to_bytes(), payer=authority)
            self._emit(AirdropClosed, state, authority=authority.to_hex())
        logger.info(f"Closed airdrop {state}")

    def close_state(self, state: Address, authority: Address, recipient: Address) -> int:
        """
        Destroy the state account and send its balance to `recipient`.

        The address is retired: later reads fail with NotInitialized and a
        new initialize for the same snapshot fails with StateRetired.

        Returns:
            Lamports moved to the recipient
        """
        with self.runtime.transaction():
            self._load_for_admin(state, authority)
            reclaimed = self.runtime.close_account(state, recipient)
            self._emit(
                StateClosed,
                state,
                recipient=recipient.to_hex(),
                reclaimed_lamports=reclaimed,
            )
        logger.info(f"Destroyed state {state}; {reclaimed} lamports to {recipient}")
        return reclaimed


__all__ = [
    "ClaimReceipt",
    "AirdropProgram",
]
