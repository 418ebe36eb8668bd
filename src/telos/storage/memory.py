"""Two-level memory: per-event L1 entries and per-day L2 rollups.

L1 entries are appended to ``memory/l1/YYYY/MM/DD.jsonl`` and never changed.
Every L1 append rebuilds ``memory/l2/YYYY/MM/DD.json`` from all of that
day's L1 entries, reusing the existing rollup id.
"""

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from ..agent.models import AgentOutcome
from ..intents.models import Intent, utc_now
from .layout import dated_path

SUMMARY_MAX_CHARS = 160
MAX_TAGS = 8
MIN_TAG_LENGTH = 3
ROLLUP_DETAIL_LINES = 6


class MemoryLevel(Enum):
    L1 = "L1"
    L2 = "L2"


@dataclass(frozen=True)
class MemoryAnchor:
    """Pointer from a memory entry to a journal or history artifact."""

    label: str
    path: str


@dataclass
class MemoryEntry:
    """A memory record at either level.

    Attributes:
        id: Entry id. Stable across rebuilds for L2.
        level: L1 (one processed intent) or L2 (one day).
        summary: One-line summary.
        details: Short supporting lines.
        anchors: Links to artifacts, relative to the data dir.
        tags: Deduplicated free-text tags.
        related_intents: Ids of the intents this entry covers.
        created_at: When the entry was first created.
        updated_at: When the entry was last rewritten.
    """

    id: uuid.UUID
    level: MemoryLevel
    summary: str
    details: list[str] = field(default_factory=list)
    anchors: list[MemoryAnchor] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    related_intents: list[uuid.UUID] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "level": self.level.value,
            "summary": self.summary,
            "details": list(self.details),
            "anchors": [{"label": a.label, "path": a.path} for a in self.anchors],
            "tags": list(self.tags),
            "related_intents": [str(i) for i in self.related_intents],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryEntry":
        return cls(
            id=uuid.UUID(data["id"]),
            level=MemoryLevel(data["level"]),
            summary=data["summary"],
            details=list(data.get("details", [])),
            anchors=[MemoryAnchor(a["label"], a["path"]) for a in data.get("anchors", [])],
            tags=list(data.get("tags", [])),
            related_intents=[uuid.UUID(i) for i in data.get("related_intents", [])],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


@dataclass(frozen=True)
class MemorySnapshotInput:
    """What a successful processing contributes to memory."""

    intent: Intent
    outcome: AgentOutcome
    journal_path: Path
    history_path: Path | None = None


@dataclass
class MemoryQuery:
    level: MemoryLevel = MemoryLevel.L2
    limit: int = 20
    since: datetime | None = None
    tag: str | None = None


def l1_path_for(data_dir: Path, day: date | datetime) -> Path:
    return dated_path(data_dir / "memory" / "l1", day, ".jsonl")


def l2_path_for(data_dir: Path, day: date | datetime) -> Path:
    return dated_path(data_dir / "memory" / "l2", day, ".json")


def truncate(value: str, max_chars: int) -> str:
    if len(value) <= max_chars:
        return value
    return value[:max_chars] + "…"


def derive_tags(intent: Intent) -> list[str]:
    """Tags from the intent source and the longer words of its summary."""
    tags: dict[str, None] = {intent.source.lower(): None}
    for token in intent.summary.split():
        cleaned = _strip_non_alnum(token).lower()
        if len(cleaned) >= MIN_TAG_LENGTH:
            tags[cleaned] = None
        if len(tags) >= MAX_TAGS:
            break
    return list(tags)


def _strip_non_alnum(token: str) -> str:
    start, end = 0, len(token)
    while start < end and not token[start].isalnum():
        start += 1
    while end > start and not token[end - 1].isalnum():
        end -= 1
    return token[start:end]


def _to_anchor(data_dir: Path, label: str, path: Path) -> MemoryAnchor | None:
    try:
        relative = path.relative_to(data_dir)
    except ValueError:
        return None
    return MemoryAnchor(label=label, path=relative.as_posix())


async def ingest_memory_snapshot(data_dir: Path, snapshot: MemorySnapshotInput) -> MemoryEntry:
    """Append an L1 entry for a processed intent and rebuild the day's L2.

    Args:
        data_dir: Root of the data directory.
        snapshot: The processed intent, its outcome and artifact paths.

    Returns:
        The new L1 entry.
    """
    return await asyncio.to_thread(_append_l1_entry, data_dir, snapshot)


def _append_l1_entry(data_dir: Path, snapshot: MemorySnapshotInput) -> MemoryEntry:
    now = utc_now()
    anchors = []
    if snapshot.history_path is not None:
        anchor = _to_anchor(data_dir, "intent/history", snapshot.history_path)
        if anchor is not None:
            anchors.append(anchor)
    anchor = _to_anchor(data_dir, "journals", snapshot.journal_path)
    if anchor is not None:
        anchors.append(anchor)

    intent, outcome = snapshot.intent, snapshot.outcome
    details = [f"Source: {intent.source}", f"Final: {outcome.final_answer}"]
    if outcome.steps:
        details.append(f"First observation: {outcome.steps[0].observation}")

    entry = MemoryEntry(
        id=uuid.uuid4(),
        level=MemoryLevel.L1,
        summary=f"{intent.summary} ⇒ {truncate(outcome.final_answer, SUMMARY_MAX_CHARS)}",
        details=details,
        anchors=anchors,
        tags=derive_tags(intent),
        related_intents=[intent.id],
        created_at=now,
        updated_at=now,
    )

    path = l1_path_for(data_dir, now)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    _rewrite_l2(data_dir, now.date())
    return entry


def _read_l1_file(path: Path) -> list[MemoryEntry]:
    return [
        MemoryEntry.from_dict(json.loads(line))
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


async def rebuild_l2_for_day(data_dir: Path, day: date) -> MemoryEntry | None:
    """Fold every L1 entry of ``day`` into that day's L2 rollup.

    Returns:
        The rewritten rollup, or None when the day has no L1 entries.
    """
    return await asyncio.to_thread(_rewrite_l2, data_dir, day)


def _rewrite_l2(data_dir: Path, day: date) -> MemoryEntry | None:
    l1_path = l1_path_for(data_dir, day)
    if not l1_path.exists():
        return None
    entries = _read_l1_file(l1_path)
    if not entries:
        return None

    l2_path = l2_path_for(data_dir, day)
    if l2_path.exists():
        previous = MemoryEntry.from_dict(json.loads(l2_path.read_text(encoding="utf-8")))
        rollup_id, created_at = previous.id, previous.created_at
    else:
        rollup_id, created_at = uuid.uuid4(), entries[0].created_at

    anchors: dict[MemoryAnchor, None] = {}
    tags: dict[str, None] = {}
    related: dict[uuid.UUID, None] = {}
    for entry in entries:
        anchors.update(dict.fromkeys(entry.anchors))
        tags.update(dict.fromkeys(entry.tags))
        related.update(dict.fromkeys(entry.related_intents))

    rollup = MemoryEntry(
        id=rollup_id,
        level=MemoryLevel.L2,
        summary=f"{len(entries)} memories on {day.isoformat()}",
        details=[f"• {entry.summary}" for entry in entries[:ROLLUP_DETAIL_LINES]],
        anchors=list(anchors),
        tags=list(tags),
        related_intents=list(related),
        created_at=created_at,
        updated_at=utc_now(),
    )

    l2_path.parent.mkdir(parents=True, exist_ok=True)
    l2_path.write_text(json.dumps(rollup.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    return rollup


def read_memory_entries(data_dir: Path, query: MemoryQuery | None = None) -> list[MemoryEntry]:
    """Entries of one level, newest first, filtered by since and tag."""
    query = query or MemoryQuery()
    level_dir = "l1" if query.level is MemoryLevel.L1 else "l2"
    root = data_dir / "memory" / level_dir
    if not root.exists():
        return []

    entries: list[MemoryEntry] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        if query.level is MemoryLevel.L1:
            entries.extend(_read_l1_file(path))
        else:
            entries.append(MemoryEntry.from_dict(json.loads(path.read_text(encoding="utf-8"))))

    tag = query.tag.lower() if query.tag else None
    selected = [
        entry
        for entry in entries
        if (query.since is None or entry.created_at >= query.since)
        and (tag is None or any(t.lower() == tag for t in entry.tags))
    ]
    selected.sort(key=lambda e: e.created_at, reverse=True)
    return selected[: query.limit]
