"""File-backed durable store for intents, journals, logs and memory."""

from .artifacts import (
    LLMLogQuery,
    append_journal_entry,
    append_llm_logs,
    journal_path_for,
    read_llm_logs,
)
from .layout import ensure_data_layout, list_markdown_files, list_markdown_tree, state_dir
from .memory import (
    MemoryAnchor,
    MemoryEntry,
    MemoryLevel,
    MemoryQuery,
    MemorySnapshotInput,
    ingest_memory_snapshot,
    read_memory_entries,
    rebuild_l2_for_day,
)
from .records import (
    ScanResult,
    archive,
    defer,
    history_path_for,
    persist_intent,
    promote,
    quarantine,
    scan_inbox,
    scan_queue,
    transition,
)
from .usage_index import UsageSummary, load_usage_summary, read_usage_index, update_usage_index

__all__ = [
    "LLMLogQuery",
    "MemoryAnchor",
    "MemoryEntry",
    "MemoryLevel",
    "MemoryQuery",
    "MemorySnapshotInput",
    "ScanResult",
    "UsageSummary",
    "append_journal_entry",
    "append_llm_logs",
    "archive",
    "defer",
    "ensure_data_layout",
    "history_path_for",
    "ingest_memory_snapshot",
    "journal_path_for",
    "list_markdown_files",
    "list_markdown_tree",
    "load_usage_summary",
    "persist_intent",
    "promote",
    "quarantine",
    "read_llm_logs",
    "read_memory_entries",
    "read_usage_index",
    "rebuild_l2_for_day",
    "scan_inbox",
    "scan_queue",
    "state_dir",
    "transition",
    "update_usage_index",
]
