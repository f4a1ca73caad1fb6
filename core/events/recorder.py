"""
Event Recorder

Collects program events. Events emitted inside a transaction are staged and
only published when the transaction commits; a rollback discards them.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from core.crypto.hashing import hash_canonical
from .models import EventKind, EventRecord, ProgramEvent


logger = logging.getLogger(__name__)


def generate_event_id(event: ProgramEvent, sequence: int) -> str:
    """
    Deterministic event id.

    Format: ev_{kind}_{hash_prefix}
    """
    digest = hash_canonical({"sequence": sequence, "event": event.payload()})
    return f"ev_{event.kind}_{digest.hex()[:12]}"


class EventRecorder:
    """
    Records published events.

    Usage:
        recorder = EventRecorder()
        recorder.stage(Claimed(...))
        recorder.commit()      # or recorder.discard()
        recorder.get_events(kind="claimed")
    """

    def __init__(self) -> None:
        self._published: list[EventRecord] = []
        self._staged: list[ProgramEvent] = []
        self._lock = threading.Lock()

    def stage(self, event: ProgramEvent) -> None:
        """Hold an event until the enclosing transaction commits."""
        with self._lock:
            self._staged.append(event)

    def commit(self) -> list[EventRecord]:
        """Publish staged events in emission order."""
        with self._lock:
            records = []
            for event in self._staged:
                sequence = len(self._published)
                record = EventRecord(
                    event_id=generate_event_id(event, sequence),
                    sequence=sequence,
                    event=event,
                )
                self._published.append(record)
                records.append(record)
                logger.debug(f"Event {record.event_id} published")
            self._staged.clear()
            return records

    def discard(self) -> None:
        with self._lock:
            if self._staged:
                logger.debug(f"Discarding {len(self._staged)} staged event(s)")
            self._staged.clear()

    def get_events(
        self,
        kind: Optional[EventKind] = None,
        state: Optional[str] = None,
    ) -> list[ProgramEvent]:
        """Published events, optionally filtered by kind and state address."""
        with self._lock:
            return [
                r.event for r in self._published
                if (kind is None or r.event.kind == kind)
                and (state is None or r.event.state == state)
            ]

    def get_records(self) -> list[EventRecord]:
        with self._lock:
            return list(self._published)

    def __len__(self) -> int:
        return len(self._published)
