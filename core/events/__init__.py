"""
Core Events Module

Event models and recording for every committed airdrop state change.
"""

from .models import (
    AirdropClosed,
    AirdropInitialized,
    Claimed,
    ClaimWindowUpdated,
    EventKind,
    EventRecord,
    MerkleRootUpdated,
    ProgramEvent,
    StateClosed,
)
from .recorder import EventRecorder, generate_event_id

__all__ = [
    "AirdropClosed",
    "AirdropInitialized",
    "Claimed",
    "ClaimWindowUpdated",
    "EventKind",
    "EventRecord",
    "MerkleRootUpdated",
    "ProgramEvent",
    "StateClosed",
    "EventRecorder",
    "generate_event_id",
]
