"""Tests for the usage index."""

import json
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from telos.agent import AgentOutcome
from telos.intents import Intent
from telos.storage import load_usage_summary, read_usage_index, update_usage_index
from telos.storage.usage_index import (
    MAX_ENTRIES,
    UsageEntry,
    index_path,
    summary_line,
    upsert_most_recent,
    upsert_top_used,
)


def make_intent(summary: str) -> Intent:
    return Intent(id=uuid.uuid4(), source="cli", summary=summary, alignment=1.0)


OUTCOME = AgentOutcome(steps=(), final_answer="done")


class TestUpserts:
    """Tests for the in-memory list updates."""

    def test_top_used_counts_repeats(self) -> None:
        """The same summary increments its count."""
        entries: list[UsageEntry] = []
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        upsert_top_used(entries, "a", now)
        upsert_top_used(entries, "b", now + timedelta(seconds=1))
        upsert_top_used(entries, "a", now + timedelta(seconds=2))

        assert [(e.summary, e.count) for e in entries] == [("a", 2), ("b", 1)]

    def test_top_used_is_bounded(self) -> None:
        """Only the most used entries are kept."""
        entries: list[UsageEntry] = []
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(MAX_ENTRIES + 3):
            upsert_top_used(entries, f"s{i}", now + timedelta(seconds=i))

        assert len(entries) == MAX_ENTRIES

    def test_most_recent_moves_to_front(self) -> None:
        """A repeated summary becomes the most recent without duplicates."""
        entries: list[UsageEntry] = []
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        upsert_most_recent(entries, "a", now)
        upsert_most_recent(entries, "b", now + timedelta(seconds=1))
        upsert_most_recent(entries, "a", now + timedelta(seconds=2))

        assert [e.summary for e in entries] == ["a", "b"]


class TestUsageIndexFile:
    """Tests for the persisted index."""

    def test_missing_index_is_empty(self, tmp_path: Path) -> None:
        """No file means an empty index."""
        index = read_usage_index(tmp_path)

        assert index.top_used == []
        assert index.most_recent == []

    @pytest.mark.asyncio
    async def test_update_writes_json(self, tmp_path: Path) -> None:
        """The index is rewritten as JSON under sp/."""
        intent = make_intent("Plan week")
        await update_usage_index(tmp_path, intent, OUTCOME)
        await update_usage_index(tmp_path, intent, OUTCOME)

        data = json.loads(index_path(tmp_path).read_text(encoding="utf-8"))
        assert index_path(tmp_path) == tmp_path / "sp" / "index.json"
        assert data["top_used"][0]["summary"] == summary_line(intent, OUTCOME)
        assert data["top_used"][0]["count"] == 2
        assert len(data["most_recent"]) == 1

    @pytest.mark.asyncio
    async def test_summary_formatting(self, tmp_path: Path) -> None:
        """Top used lines carry their count."""
        await update_usage_index(tmp_path, make_intent("Plan week"), OUTCOME)

        summary = load_usage_summary(tmp_path)

        assert summary.top_used == ["Plan week ⇒ done (1)"]
        assert summary.most_recent == ["Plan week ⇒ done"]
