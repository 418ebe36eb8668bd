"""Telegram bridge: chat messages become intents in the inbox."""

import logging
import os
from pathlib import Path

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..intake import submit_intent
from ..logging import get_logger
from ..orchestrator import OrchestratorHandle

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = """
*Telos*

Send me a message and I will queue it as an intent for the next beat.

*Commands:*
/start - Show this message
/beat - Run a beat now
"""

MAX_MESSAGE_LENGTH = 4096
MAX_SUMMARY_LENGTH = 120
SOURCE = "telegram"


def truncate_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Truncate message to fit Telegram limits."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 20] + "\n... [truncated]"


def summary_from_message(text: str, max_length: int = MAX_SUMMARY_LENGTH) -> str:
    """First non-empty line of a message, cut to max_length characters."""
    for line in text.splitlines():
        line = line.strip()
        if line:
            return line[:max_length]
    return ""


class TelegramBridge:
    """Polls Telegram and submits each text message as an intent."""

    def __init__(
        self,
        data_dir: Path,
        handle: OrchestratorHandle | None,
        token: str | None = None,
        default_alignment: float = 0.6,
    ) -> None:
        self.token = token or os.getenv("TELEGRAM_TOKEN")
        if not self.token:
            raise ValueError("TELEGRAM_TOKEN not set")

        self.data_dir = data_dir
        self.handle = handle
        self.default_alignment = default_alignment
        self.json_logger = get_logger()
        self._app: Application | None = None

    def _get_chat_id(self, update: Update) -> str:
        assert update.effective_chat is not None
        return str(update.effective_chat.id)

    async def _handle_start(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /start command."""
        assert update.message is not None
        self.json_logger.log("telegram_start", chat_id=self._get_chat_id(update))
        await update.message.reply_text(WELCOME_MESSAGE, parse_mode=ParseMode.MARKDOWN)

    async def _handle_beat(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle /beat command."""
        assert update.message is not None
        accepted = self.handle is not None and await self.handle.request_beat()
        self.json_logger.log(
            "telegram_beat",
            chat_id=self._get_chat_id(update),
            accepted=accepted,
        )
        if accepted:
            await update.message.reply_text("Beat requested.")
        else:
            await update.message.reply_text("Beat request rejected, the orchestrator is not running.")

    async def _handle_message(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> None:
        """Handle incoming text messages."""
        assert update.message is not None
        assert update.message.text is not None

        chat_id = self._get_chat_id(update)
        text = update.message.text
        summary = summary_from_message(text)
        if not summary:
            await update.message.reply_text("Empty message, nothing to queue.")
            return

        try:
            result = await submit_intent(
                self.data_dir,
                self.handle,
                source=SOURCE,
                summary=summary,
                alignment=self.default_alignment,
                body=text,
            )
        except OSError as e:
            logger.exception("Failed to persist intent from chat %s", chat_id)
            self.json_logger.log("telegram_error", chat_id=chat_id, error=str(e))
            await update.message.reply_text(f"Error: {e}")
            return

        self.json_logger.log(
            "telegram_intent",
            chat_id=chat_id,
            intent_id=str(result.id),
            summary=summary,
        )
        status = "beat scheduled" if result.beat_scheduled else "waiting for the next beat"
        await update.message.reply_text(
            truncate_message(f"Intent {result.id} queued ({status}).")
        )

    def build_app(self) -> Application:
        """Build the Telegram application."""
        self._app = Application.builder().token(self.token).build()

        self._app.add_handler(CommandHandler("start", self._handle_start))
        self._app.add_handler(CommandHandler("beat", self._handle_beat))
        self._app.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_message)
        )
        return self._app

    async def start(self) -> None:
        """Start polling on the running event loop."""
        app = self.build_app()

        logger.info("Starting Telegram bridge...")
        await app.initialize()
        await app.start()
        await app.updater.start_polling()  # type: ignore

    async def stop(self) -> None:
        """Stop polling and release the application."""
        if self._app:
            await self._app.updater.stop()  # type: ignore
            await self._app.stop()
            await self._app.shutdown()
            self._app = None
