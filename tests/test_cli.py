"""Tests for CLI."""

from pathlib import Path

import pytest

from telos.cli import create_parser, run_cli
from telos.intents import IntentState
from telos.storage import state_dir


@pytest.fixture
def root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for name in ("TELOS_LLM_PROVIDER", "TELOS_INTENT_THRESHOLD", "TELEGRAM_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def cli(root: Path, *args: str) -> int:
    return run_cli(["--root", str(root), *args])


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    """Test that no subcommand shows help and succeeds."""
    assert run_cli([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_parser_defaults() -> None:
    """Test submit defaults."""
    args = create_parser().parse_args(["submit", "Plan week"])
    assert args.source == "cli"
    assert args.alignment == 1.0


def test_submit_writes_inbox(root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test that submit persists a record."""
    assert cli(root, "submit", "Plan week", "--alignment", "0.8", "--body", "details") == 0

    inbox = state_dir(root / "data", IntentState.INBOX)
    files = [p for p in inbox.iterdir() if p.is_file()]
    assert len(files) == 1
    assert "Submitted intent" in capsys.readouterr().out


def test_beat_processes_submitted_intent(root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test a single beat archives the intent and fills the artifacts."""
    cli(root, "submit", "Plan week")
    capsys.readouterr()

    assert cli(root, "beat") == 0
    assert "1 processed" in capsys.readouterr().out
    assert len(list(state_dir(root / "data", IntentState.ARCHIVED).iterdir())) == 1

    assert cli(root, "usage") == 0
    assert "Plan week ⇒ TelosOps completed the plan for 'Plan week' (1)" in capsys.readouterr().out

    assert cli(root, "logs", "--phase", "final") == 0
    out = capsys.readouterr().out
    assert "FINAL" in out
    assert "THINK" not in out

    assert cli(root, "memory", "--level", "l1") == 0
    assert "[L1]" in capsys.readouterr().out

    assert cli(root, "tree") == 0
    out = capsys.readouterr().out
    assert "intent/history/" in out
    assert "journals/" in out


def test_empty_views(root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test inspection commands on a fresh root."""
    assert cli(root, "logs") == 0
    assert "No LLM logs found." in capsys.readouterr().out
    assert cli(root, "memory") == 0
    assert "No memories found." in capsys.readouterr().out
    assert cli(root, "usage") == 0
    assert "(none)" in capsys.readouterr().out


def test_config_error_exit_code(root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test that invalid configuration exits with 1."""
    config_dir = root / "config"
    config_dir.mkdir()
    (config_dir / "beat.yml").write_text("interval_minutes: -1\n", encoding="utf-8")

    assert cli(root, "tree") == 1
    assert "interval_minutes" in capsys.readouterr().err
