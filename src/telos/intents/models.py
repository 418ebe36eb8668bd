"""Data models for intents and their lifecycle states."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class IntentState(Enum):
    """Lifecycle states of an intent record.

    Each state is backed by one directory under the data dir; moving the
    record file between directories is how a transition is persisted.
    """

    INBOX = "inbox"
    DEFERRED = "deferred"
    QUEUED = "queued"
    FAILED = "failed"
    ARCHIVED = "archived"

    @property
    def relative_dir(self) -> str:
        """Directory of this state, relative to the data dir."""
        return _STATE_DIRS[self]


_STATE_DIRS: dict[IntentState, str] = {
    IntentState.INBOX: "intent/inbox",
    IntentState.DEFERRED: "intent/inbox/deferred",
    IntentState.QUEUED: "intent/queue",
    IntentState.FAILED: "intent/queue/failed",
    IntentState.ARCHIVED: "intent/history",
}

# Every allowed edge of the lifecycle
TRANSITIONS: frozenset[tuple[IntentState, IntentState]] = frozenset({
    (IntentState.INBOX, IntentState.QUEUED),
    (IntentState.INBOX, IntentState.DEFERRED),
    (IntentState.QUEUED, IntentState.FAILED),
    (IntentState.QUEUED, IntentState.ARCHIVED),
})


@dataclass
class Intent:
    """A unit of requested work.

    Attributes:
        id: Stable identifier across every state transition.
        source: Free-text tag naming where the intent came from.
        summary: Short description of the requested work.
        alignment: Admission score compared against the beat threshold.
        created_at: Creation time (UTC).
        storage_path: Where the record file currently lives. Not serialized.
    """

    id: uuid.UUID
    source: str
    summary: str
    alignment: float
    created_at: datetime = field(default_factory=utc_now)
    storage_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict, without the storage path."""
        return {
            "id": str(self.id),
            "source": self.source,
            "summary": self.summary,
            "alignment": self.alignment,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class IntentRecord:
    """An intent as found on disk by a directory scan."""

    path: Path
    intent: Intent


@dataclass(frozen=True)
class PersistedIntent:
    """Result of writing a new intent into the inbox."""

    id: uuid.UUID
    path: Path
