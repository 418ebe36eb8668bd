"""Append-only per-day artifacts: journals and LLM trace logs."""

import asyncio
import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ..agent.models import AgentOutcome, LLMLogEntry
from ..intents.models import Intent, utc_now
from .layout import dated_path

DEFAULT_LOG_LIMIT = 100


def journal_path_for(data_dir: Path, when: datetime) -> Path:
    """Journal file for the day of ``when``."""
    return dated_path(data_dir / "journals", when, ".md")


def llm_log_path_for(data_dir: Path, when: datetime) -> Path:
    """LLM trace log for the day of ``when``."""
    return dated_path(data_dir / "logs" / "llm", when, ".jsonl")


def format_trace(outcome: AgentOutcome) -> str:
    """Numbered Thought/Action/Observation lines for a journal entry."""
    if not outcome.steps:
        return "(no ReAct steps recorded)"
    lines = []
    for idx, step in enumerate(outcome.steps, start=1):
        lines.append(
            f"{idx}. Thought: {step.thought}\n"
            f"   Action: {step.action}\n"
            f"   Observation: {step.observation}"
        )
    return "\n".join(lines)


async def append_journal_entry(
    data_dir: Path,
    intent: Intent,
    outcome: AgentOutcome,
) -> Path:
    """Append a human-readable trace block to today's journal.

    Args:
        data_dir: Root of the data directory.
        intent: The processed intent.
        outcome: What the runtime produced for it.

    Returns:
        Path of the journal file written to.
    """
    return await asyncio.to_thread(_write_journal_entry, data_dir, intent, outcome)


def _write_journal_entry(data_dir: Path, intent: Intent, outcome: AgentOutcome) -> Path:
    now = utc_now()
    path = journal_path_for(data_dir, now)
    path.parent.mkdir(parents=True, exist_ok=True)

    entry = (
        f"## {now.strftime('%H:%M:%S')} — {intent.summary}\n\n"
        f"Intent processed: {intent.summary}\n"
        f"Final answer: {outcome.final_answer}\n\n"
        f"### ReAct trace\n"
        f"{format_trace(outcome)}\n\n"
    )
    with open(path, "a", encoding="utf-8") as f:
        f.write(entry)
    return path


async def append_llm_logs(data_dir: Path, entries: list[LLMLogEntry]) -> None:
    """Append one JSON line per LLM call to the log of the call's day."""
    await asyncio.to_thread(_write_llm_logs, data_dir, entries)


def _write_llm_logs(data_dir: Path, entries: list[LLMLogEntry]) -> None:
    for entry in entries:
        path = llm_log_path_for(data_dir, entry.timestamp)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")


@dataclass
class LLMLogQuery:
    """Filters for read_llm_logs. A limit of 0 means the default."""

    model: str | None = None
    run_id: uuid.UUID | None = None
    phase: str | None = None
    since: datetime | None = None
    limit: int = DEFAULT_LOG_LIMIT


def _matches(entry: LLMLogEntry, query: LLMLogQuery) -> bool:
    if query.model is not None:
        if entry.model is None or entry.model.lower() != query.model.lower():
            return False
    if query.phase is not None and entry.phase.lower() != query.phase.lower():
        return False
    if query.run_id is not None and entry.run_id != query.run_id:
        return False
    if query.since is not None and entry.timestamp < query.since:
        return False
    return True


async def read_llm_logs(data_dir: Path, query: LLMLogQuery | None = None) -> list[LLMLogEntry]:
    """Read LLM log entries, newest first.

    Files are visited in reverse date order and lines in reverse file
    order, stopping once ``limit`` matches are collected.
    """
    query = query or LLMLogQuery()
    return await asyncio.to_thread(_scan_llm_logs, data_dir, query)


def _scan_llm_logs(data_dir: Path, query: LLMLogQuery) -> list[LLMLogEntry]:
    limit = query.limit or DEFAULT_LOG_LIMIT

    root = data_dir / "logs" / "llm"
    if not root.exists():
        return []

    results: list[LLMLogEntry] = []
    for path in sorted((p for p in root.rglob("*.jsonl") if p.is_file()), reverse=True):
        lines = path.read_text(encoding="utf-8").splitlines()
        for line in reversed(lines):
            if not line.strip():
                continue
            entry = LLMLogEntry.from_dict(json.loads(line))
            if not _matches(entry, query):
                continue
            results.append(entry)
            if len(results) >= limit:
                return results
    return results
