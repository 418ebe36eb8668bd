"""Beat scheduling: ingest, drain and the command channel."""

from .beat import (
    BeatOrchestrator,
    BeatReport,
    BeatState,
    DrainReport,
    IngestReport,
    OrchestratorCommand,
    OrchestratorHandle,
    spawn,
)

__all__ = [
    "BeatOrchestrator",
    "BeatReport",
    "BeatState",
    "DrainReport",
    "IngestReport",
    "OrchestratorCommand",
    "OrchestratorHandle",
    "spawn",
]
