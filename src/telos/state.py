"""Shared application context."""

import asyncio
from pathlib import Path

from .agent import AgentRuntime
from .config import AppConfig
from .intents import SharedIntentQueue
from .logging import JSONLLogger, get_logger


class AppContext:
    """Config, shared queue, agent and shutdown signal for one process.

    The orchestrator and the submission paths hold the same instance.
    """

    def __init__(
        self,
        config: AppConfig,
        agent: AgentRuntime,
        events: JSONLLogger | None = None,
        intents: SharedIntentQueue | None = None,
    ) -> None:
        self.config = config
        self.agent = agent
        self.events = events or get_logger()
        self.intents = intents or SharedIntentQueue()
        self._shutdown = asyncio.Event()

    @property
    def data_dir(self) -> Path:
        return self.config.data_dir

    @property
    def shutdown_event(self) -> asyncio.Event:
        return self._shutdown

    def request_shutdown(self) -> None:
        """Wake every shutdown waiter."""
        self._shutdown.set()

    @property
    def shutting_down(self) -> bool:
        return self._shutdown.is_set()
