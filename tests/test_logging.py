"""Tests for the JSONL event log."""

import json
from pathlib import Path

import pytest

from telos.logging import EventEntry, JSONLLogger, configure_logger, get_logger


@pytest.fixture
def logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path)


def test_event_entry_to_dict():
    """Test EventEntry excludes None values."""
    entry = EventEntry(timestamp="2024-01-01T00:00:00Z", event="beat_start")
    data = entry.to_dict()

    assert data == {"timestamp": "2024-01-01T00:00:00Z", "event": "beat_start"}


def test_log_creates_file(logger: JSONLLogger):
    """Test that logging creates the events file."""
    logger.log("beat_start")

    assert logger.log_path.exists()
    assert logger.log_path.name == "events.jsonl"


def test_log_writes_jsonl(logger: JSONLLogger):
    """Test that events are written one per line with extras."""
    logger.log("intent_retry", intent_id="abc", attempt=2, error="boom")
    logger.log("beat_end", processed=3)

    lines = logger.log_path.read_text(encoding="utf-8").splitlines()

    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["event"] == "intent_retry"
    assert first["attempt"] == 2
    assert json.loads(lines[1])["extra"] == {"processed": 3}


def test_rotation(tmp_path: Path):
    """Test that a full log file is rotated."""
    logger = JSONLLogger(log_dir=tmp_path, max_size_mb=0.0001)
    for _ in range(20):
        logger.log("beat_start", summary="x" * 20)

    assert len(list(tmp_path.glob("events_*.jsonl"))) >= 1


def test_configure_logger_sets_global(tmp_path: Path):
    """Test that configure_logger replaces the global instance."""
    configured = configure_logger(tmp_path)

    assert get_logger() is configured
    assert configured.log_dir == tmp_path
