"""
Event Models

Schemas for the events the airdrop program emits. Events are the audit
trail of every committed state change; an aborted operation emits nothing.

Key Design Principles:
1. event_id is derived from the canonical payload, so replays agree
2. Digests and addresses are carried as 0x-hex strings
3. timestamp is the runtime clock reading at commit
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from core.schemas.versioning import SCHEMA_VERSION


EventKind = Literal[
    "airdrop_initialized",
    "claimed",
    "claim_window_updated",
    "merkle_root_updated",
    "airdrop_closed",
    "state_closed",
]


class ProgramEvent(BaseModel):
    """Base event: what happened, to which state, and when."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: str = Field(default=SCHEMA_VERSION)
    kind: EventKind = Field(..., description="Event type")
    state: str = Field(..., description="State address (0x-hex)")
    timestamp: int = Field(..., description="Runtime clock at commit (unix seconds)")

    def payload(self) -> dict[str, Any]:
        """Committed fields used for the event id."""
        return self.model_dump(mode="json")


class AirdropInitialized(ProgramEvent):
    kind: Literal["airdrop_initialized"] = "airdrop_initialized"
    authority: str
    snapshot_hash: str
    merkle_root: str
    claim_start_ts: int
    claim_duration: int
    total_claims: int


class Claimed(ProgramEvent):
    kind: Literal["claimed"] = "claimed"
    wallet: str
    index: int
    amount: int


class ClaimWindowUpdated(ProgramEvent):
    kind: Literal["claim_window_updated"] = "claim_window_updated"
    new_start_ts: int
    new_duration: int


class MerkleRootUpdated(ProgramEvent):
    kind: Literal["merkle_root_updated"] = "merkle_root_updated"
    new_root: str
    new_total_claims: int


class AirdropClosed(ProgramEvent):
    kind: Literal["airdrop_closed"] = "airdrop_closed"
    authority: str


class StateClosed(ProgramEvent):
    kind: Literal["state_closed"] = "state_closed"
    recipient: str
    reclaimed_lamports: int


class EventRecord(BaseModel):
    """A published event with its deterministic id and sequence number."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    event_id: str
    sequence: int = Field(..., ge=0)
    event: ProgramEvent
