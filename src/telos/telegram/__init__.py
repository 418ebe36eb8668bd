"""Telegram intake for intents."""

from .bot import TelegramBridge, summary_from_message, truncate_message

__all__ = ["TelegramBridge", "summary_from_message", "truncate_message"]
