"""Submission path shared by the CLI and the Telegram bridge."""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from .orchestrator import OrchestratorHandle
from .storage import persist_intent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a submission."""

    id: uuid.UUID
    path: Path
    beat_scheduled: bool


async def submit_intent(
    data_dir: Path,
    handle: OrchestratorHandle | None,
    source: str,
    summary: str,
    alignment: float,
    body: str = "",
) -> SubmissionResult:
    """Persist an intent in the inbox and ask for a beat.

    The record is written first, so a rejected beat request only delays
    processing until the next tick.

    Args:
        data_dir: Root of the data directory.
        handle: Orchestrator handle, or None when no orchestrator is running.
        source: Where the intent came from.
        summary: Short description of the requested work.
        alignment: Admission score.
        body: Free-text body.

    Returns:
        SubmissionResult with the new id, its inbox path and whether the
        beat request was accepted.
    """
    persisted = await persist_intent(data_dir, source, summary, alignment, body)

    scheduled = False
    if handle is not None:
        scheduled = await handle.request_beat()
        if not scheduled:
            logger.warning(
                "Intent %s persisted but beat request was rejected", persisted.id
            )

    return SubmissionResult(id=persisted.id, path=persisted.path, beat_scheduled=scheduled)
