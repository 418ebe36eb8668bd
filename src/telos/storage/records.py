"""Intent record files and their directory-backed lifecycle.

Each intent is one markdown file with a YAML frontmatter header. The
directory holding the file is the intent's state; moving the file between
state directories is the only way a transition is persisted.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import frontmatter
import yaml

from ..errors import IntentParseError, InvalidTransitionError
from ..intents.models import (
    TRANSITIONS,
    Intent,
    IntentRecord,
    IntentState,
    PersistedIntent,
    utc_now,
)
from .layout import state_dir

logger = logging.getLogger(__name__)

# Header key used on disk for the admission score
ALIGNMENT_KEY = "telos_alignment"


@dataclass
class ScanResult:
    """Records found in a state directory plus per-file parse failures."""

    records: list[IntentRecord] = field(default_factory=list)
    errors: list[IntentParseError] = field(default_factory=list)


def _split_header(content: str) -> dict[str, Any]:
    """Extract the header mapping from a record file's content.

    Files starting with ``---`` are parsed as frontmatter. Otherwise the
    first paragraph is read as YAML.
    """
    trimmed = content.lstrip()
    if trimmed.startswith("---"):
        post = frontmatter.loads(trimmed)
        return dict(post.metadata)

    block = trimmed.split("\n\n", 1)[0]
    if not block.strip():
        return {}
    loaded = yaml.safe_load(block)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"header must be a mapping, got {type(loaded).__name__}")
    return loaded


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"created_at must be a timestamp, got {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_intent_file(path: Path) -> Intent:
    """Read an intent record, filling defaults for missing header fields.

    Args:
        path: The record file.

    Returns:
        The parsed Intent, with storage_path set to path.

    Raises:
        IntentParseError: If the header is not valid YAML or a field has
            the wrong type.
        OSError: If the file cannot be read.
    """
    content = path.read_text(encoding="utf-8")
    try:
        header = _split_header(content)
        raw_id = header.get("id")
        intent_id = uuid.UUID(str(raw_id)) if raw_id is not None else uuid.uuid4()

        raw_alignment = header.get(ALIGNMENT_KEY, header.get("alignment"))
        alignment = float(raw_alignment) if raw_alignment is not None else 0.0

        raw_created = header.get("created_at")
        created_at = _parse_datetime(raw_created) if raw_created is not None else utc_now()
    except Exception as e:
        raise IntentParseError(path, str(e)) from e

    source = header.get("source")
    summary = header.get("summary")
    return Intent(
        id=intent_id,
        source=str(source) if source is not None else "unknown",
        summary=str(summary) if summary is not None else path.stem,
        alignment=alignment,
        created_at=created_at,
        storage_path=path,
    )


def scan_intent_dir(directory: Path) -> ScanResult:
    """Parse every regular file directly under directory.

    Records are sorted by creation time, oldest first. A file whose header
    fails to parse is reported in ``errors`` and skipped.
    """
    result = ScanResult()
    if not directory.exists():
        return result

    for path in directory.iterdir():
        if not path.is_file():
            continue
        try:
            intent = parse_intent_file(path)
        except OSError as e:
            error = IntentParseError(path, str(e))
            logger.warning("Skipping unreadable intent record: %s", error)
            result.errors.append(error)
            continue
        except IntentParseError as e:
            logger.warning("Skipping intent record: %s", e)
            result.errors.append(e)
            continue
        result.records.append(IntentRecord(path=path, intent=intent))

    result.records.sort(key=lambda record: record.intent.created_at)
    return result


def scan_inbox(data_dir: Path) -> ScanResult:
    """Scan the intake area."""
    return scan_intent_dir(state_dir(data_dir, IntentState.INBOX))


def scan_queue(data_dir: Path) -> ScanResult:
    """Scan the queue directory, used to rebuild the queue at startup."""
    return scan_intent_dir(state_dir(data_dir, IntentState.QUEUED))


def record_file_name(intent_id: uuid.UUID, created_at: datetime) -> str:
    """File name encoding creation time and id."""
    return f"{created_at.strftime('%Y%m%dT%H%M%S')}-{intent_id}.md"


def render_record(intent: Intent, body: str) -> str:
    """Serialize an intent header and body into record file content."""
    header = {
        "id": str(intent.id),
        "source": intent.source,
        "summary": intent.summary,
        ALIGNMENT_KEY: intent.alignment,
        "created_at": intent.created_at.isoformat(),
    }
    dumped = yaml.safe_dump(header, sort_keys=False, allow_unicode=True).rstrip()
    content = f"---\n{dumped}\n---\n\n"
    if body:
        content += body if body.endswith("\n") else body + "\n"
    return content


async def persist_intent(
    data_dir: Path,
    source: str,
    summary: str,
    alignment: float,
    body: str,
) -> PersistedIntent:
    """Write a new intent record into the inbox.

    Args:
        data_dir: Root of the data directory.
        source: Where the intent came from.
        summary: Short description of the requested work.
        alignment: Admission score.
        body: Free-text body written below the header.

    Returns:
        PersistedIntent with the new id and file path.
    """
    return await asyncio.to_thread(_write_new_record, data_dir, source, summary, alignment, body)


def _write_new_record(
    data_dir: Path,
    source: str,
    summary: str,
    alignment: float,
    body: str,
) -> PersistedIntent:
    inbox = state_dir(data_dir, IntentState.INBOX)
    inbox.mkdir(parents=True, exist_ok=True)

    intent = Intent(
        id=uuid.uuid4(),
        source=source,
        summary=summary,
        alignment=alignment,
        created_at=utc_now(),
    )
    path = inbox / record_file_name(intent.id, intent.created_at)
    path.write_text(render_record(intent, body), encoding="utf-8")
    logger.info("Persisted intent %s at %s", intent.id, path)
    return PersistedIntent(id=intent.id, path=path)


def transition(
    path: Path,
    data_dir: Path,
    source: IntentState,
    target: IntentState,
) -> Path:
    """Move a record file along one lifecycle edge.

    The file name is preserved. The target directory is created if needed.

    Raises:
        InvalidTransitionError: If (source, target) is not an allowed edge.
        OSError: If the rename fails.
    """
    if (source, target) not in TRANSITIONS:
        raise InvalidTransitionError(source, target)

    destination_dir = state_dir(data_dir, target)
    destination_dir.mkdir(parents=True, exist_ok=True)
    destination = destination_dir / path.name
    path.rename(destination)
    logger.debug("Moved %s from %s to %s", path.name, source.value, target.value)
    return destination


def promote(path: Path, data_dir: Path) -> Path:
    """Inbox -> queue."""
    return transition(path, data_dir, IntentState.INBOX, IntentState.QUEUED)


def defer(path: Path, data_dir: Path) -> Path:
    """Inbox -> deferred."""
    return transition(path, data_dir, IntentState.INBOX, IntentState.DEFERRED)


def quarantine(path: Path, data_dir: Path) -> Path:
    """Queue -> failed."""
    return transition(path, data_dir, IntentState.QUEUED, IntentState.FAILED)


async def archive(intent: Intent, data_dir: Path) -> Path | None:
    """Queue -> history.

    A no-op returning None when the intent has no storage path or the file
    is already gone, so retried calls succeed.
    """
    return await asyncio.to_thread(_archive, intent, data_dir)


def _archive(intent: Intent, data_dir: Path) -> Path | None:
    path = intent.storage_path
    if path is None or not path.exists():
        return None
    return transition(path, data_dir, IntentState.QUEUED, IntentState.ARCHIVED)


def history_path_for(intent: Intent, data_dir: Path) -> Path | None:
    """Where archive() puts the intent's file."""
    if intent.storage_path is None:
        return None
    return state_dir(data_dir, IntentState.ARCHIVED) / intent.storage_path.name
