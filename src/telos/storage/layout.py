"""On-disk layout of the data directory."""

from datetime import date, datetime
from pathlib import Path

from ..intents.models import IntentState

REQUIRED_DIRS = (
    *(state.relative_dir for state in IntentState),
    "journals",
    "sp",
    "logs/llm",
    "memory/l1",
    "memory/l2",
)


def ensure_data_layout(data_dir: Path) -> None:
    """Create every directory the store expects under data_dir."""
    for relative in REQUIRED_DIRS:
        (data_dir / relative).mkdir(parents=True, exist_ok=True)


def state_dir(data_dir: Path, state: IntentState) -> Path:
    """Directory backing an intent state."""
    return data_dir / state.relative_dir


def dated_path(root: Path, day: date | datetime, suffix: str) -> Path:
    """Per-day file path: ``root/YYYY/MM/DD<suffix>``."""
    return root / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}{suffix}"


def list_markdown_files(root: Path) -> list[Path]:
    """All ``.md`` files under root, recursively."""
    if not root.exists():
        return []
    return sorted(p for p in root.rglob("*.md") if p.is_file())


def list_markdown_tree(data_dir: Path) -> list[str]:
    """Sorted markdown paths relative to data_dir, using forward slashes."""
    return sorted(
        path.relative_to(data_dir).as_posix() for path in list_markdown_files(data_dir)
    )
