"""Tests for the Telegram bridge."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from telos.intents import IntentState
from telos.logging import JSONLLogger
from telos.orchestrator import OrchestratorHandle
from telos.storage import scan_inbox, state_dir
from telos.telegram import TelegramBridge, summary_from_message, truncate_message
from telos.telegram.bot import MAX_MESSAGE_LENGTH, MAX_SUMMARY_LENGTH


def make_update(text: str | None = None) -> MagicMock:
    update = MagicMock()
    update.effective_chat.id = 42
    update.message.text = text
    update.message.reply_text = AsyncMock()
    return update


@pytest.fixture
def make_bridge(tmp_path: Path):
    def factory(handle: OrchestratorHandle | None = None) -> TelegramBridge:
        with patch("telos.telegram.bot.get_logger", return_value=JSONLLogger(tmp_path / "logs")):
            return TelegramBridge(tmp_path, handle, token="123:abc", default_alignment=0.6)

    return factory


class TestHelpers:
    def test_summary_is_first_line(self):
        assert summary_from_message("Deploy docs\nwith details below") == "Deploy docs"

    def test_summary_skips_blank_lines(self):
        assert summary_from_message("\n\n  Call bank  \nmore") == "Call bank"

    def test_summary_is_truncated(self):
        assert len(summary_from_message("x" * 500)) == MAX_SUMMARY_LENGTH

    def test_long_message_truncated(self):
        result = truncate_message("x" * 5000)
        assert len(result) <= MAX_MESSAGE_LENGTH
        assert "truncated" in result

    def test_short_message_unchanged(self):
        assert truncate_message("Short message") == "Short message"


class TestTelegramBridge:
    def test_requires_token(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("TELEGRAM_TOKEN", raising=False)
        with pytest.raises(ValueError):
            TelegramBridge(tmp_path, None)

    @pytest.mark.asyncio
    async def test_message_becomes_intent(self, tmp_path: Path, make_bridge):
        commands: asyncio.Queue = asyncio.Queue(maxsize=4)
        bridge = make_bridge(OrchestratorHandle(commands, asyncio.Event()))
        update = make_update("Write release notes\nInclude the API changes")

        await bridge._handle_message(update, MagicMock())

        records = scan_inbox(tmp_path).records
        assert len(records) == 1
        intent = records[0].intent
        assert intent.source == "telegram"
        assert intent.summary == "Write release notes"
        assert intent.alignment == 0.6
        assert "Include the API changes" in records[0].path.read_text(encoding="utf-8")
        assert commands.qsize() == 1
        reply = update.message.reply_text.call_args.args[0]
        assert str(intent.id) in reply
        assert "beat scheduled" in reply

    @pytest.mark.asyncio
    async def test_message_without_orchestrator(self, tmp_path: Path, make_bridge):
        bridge = make_bridge(None)
        update = make_update("Write release notes")

        await bridge._handle_message(update, MagicMock())

        reply = update.message.reply_text.call_args.args[0]
        assert "waiting for the next beat" in reply

    @pytest.mark.asyncio
    async def test_blank_message_is_ignored(self, tmp_path: Path, make_bridge):
        bridge = make_bridge(None)
        update = make_update("   \n  ")

        await bridge._handle_message(update, MagicMock())

        assert not state_dir(tmp_path, IntentState.INBOX).exists()
        update.message.reply_text.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_beat_command(self, make_bridge):
        commands: asyncio.Queue = asyncio.Queue(maxsize=4)
        bridge = make_bridge(OrchestratorHandle(commands, asyncio.Event()))
        update = make_update("/beat")

        await bridge._handle_beat(update, MagicMock())

        assert commands.qsize() == 1
        assert update.message.reply_text.call_args.args[0] == "Beat requested."

    @pytest.mark.asyncio
    async def test_beat_command_rejected(self, make_bridge):
        closed = asyncio.Event()
        closed.set()
        bridge = make_bridge(OrchestratorHandle(asyncio.Queue(), closed))
        update = make_update("/beat")

        await bridge._handle_beat(update, MagicMock())

        assert "rejected" in update.message.reply_text.call_args.args[0]

    def test_build_app_registers_handlers(self, make_bridge):
        bridge = make_bridge(None)

        app = bridge.build_app()

        assert sum(len(group) for group in app.handlers.values()) == 3
