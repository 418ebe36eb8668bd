"""Usage index of the most used and most recent intent outcomes.

The index is one small JSON document rewritten on every update. Entries are
keyed by the exact ``"<summary> ⇒ <final answer>"`` line; near-duplicate
answers are distinct entries.
"""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from ..agent.models import AgentOutcome
from ..intents.models import Intent, utc_now

MAX_ENTRIES = 10


@dataclass
class UsageEntry:
    summary: str
    count: int
    last_seen: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "count": self.count,
            "last_seen": self.last_seen.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageEntry":
        return cls(
            summary=data["summary"],
            count=int(data["count"]),
            last_seen=datetime.fromisoformat(data["last_seen"]),
        )


@dataclass
class UsageIndex:
    top_used: list[UsageEntry] = field(default_factory=list)
    most_recent: list[UsageEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "top_used": [entry.to_dict() for entry in self.top_used],
            "most_recent": [entry.to_dict() for entry in self.most_recent],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageIndex":
        return cls(
            top_used=[UsageEntry.from_dict(e) for e in data.get("top_used", [])],
            most_recent=[UsageEntry.from_dict(e) for e in data.get("most_recent", [])],
        )


@dataclass
class UsageSummary:
    """Display form of the index."""

    top_used: list[str]
    most_recent: list[str]


def index_path(data_dir: Path) -> Path:
    return data_dir / "sp" / "index.json"


def summary_line(intent: Intent, outcome: AgentOutcome) -> str:
    """Key under which an outcome is counted."""
    return f"{intent.summary} ⇒ {outcome.final_answer}"


def upsert_top_used(entries: list[UsageEntry], summary: str, now: datetime) -> None:
    """Count one more use of summary; keep the MAX_ENTRIES most used."""
    for entry in entries:
        if entry.summary == summary:
            entry.count += 1
            entry.last_seen = now
            break
    else:
        entries.append(UsageEntry(summary=summary, count=1, last_seen=now))

    entries.sort(key=lambda e: (e.count, e.last_seen), reverse=True)
    del entries[MAX_ENTRIES:]


def upsert_most_recent(entries: list[UsageEntry], summary: str, now: datetime) -> None:
    """Move summary to the most recent position; keep MAX_ENTRIES."""
    entries[:] = [entry for entry in entries if entry.summary != summary]
    entries.append(UsageEntry(summary=summary, count=1, last_seen=now))
    entries.sort(key=lambda e: e.last_seen, reverse=True)
    del entries[MAX_ENTRIES:]


def read_usage_index(data_dir: Path) -> UsageIndex:
    """Load the persisted index, or an empty one if none exists yet."""
    path = index_path(data_dir)
    if not path.exists():
        return UsageIndex()
    return UsageIndex.from_dict(json.loads(path.read_text(encoding="utf-8")))


async def update_usage_index(data_dir: Path, intent: Intent, outcome: AgentOutcome) -> UsageIndex:
    """Record one completed intent in the index and rewrite it."""
    return await asyncio.to_thread(_rewrite_usage_index, data_dir, intent, outcome)


def _rewrite_usage_index(data_dir: Path, intent: Intent, outcome: AgentOutcome) -> UsageIndex:
    path = index_path(data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    index = read_usage_index(data_dir)
    now = utc_now()
    summary = summary_line(intent, outcome)
    upsert_top_used(index.top_used, summary, now)
    upsert_most_recent(index.most_recent, summary, now)

    path.write_text(json.dumps(index.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    return index


def load_usage_summary(data_dir: Path) -> UsageSummary:
    """Index entries formatted for display."""
    index = read_usage_index(data_dir)
    return UsageSummary(
        top_used=[f"{e.summary} ({e.count})" for e in index.top_used],
        most_recent=[e.summary for e in index.most_recent],
    )
