"""Application configuration.

Settings come from YAML files under ``<root>/config`` with environment
variable overrides. The app root is ``TELOS_APP_ROOT`` or the current
directory; data lives under ``<root>/data``.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

LLM_PROVIDERS = ("local_stub", "groq")


@dataclass
class BeatConfig:
    """Scheduling and retry settings of the beat orchestrator.

    Attributes:
        interval_minutes: Time between timer-driven beats.
        intent_threshold: Minimum alignment for an intent to be queued.
        max_intent_attempts: Processing failures before quarantine.
        storage_retry_attempts: Calls per storage write, first one included.
        storage_retry_delay_ms: Pause between storage write attempts.
        command_buffer: Capacity of the "run now" command channel.
    """

    interval_minutes: float = 5
    intent_threshold: float = 0.5
    max_intent_attempts: int = 3
    storage_retry_attempts: int = 3
    storage_retry_delay_ms: int = 200
    command_buffer: int = 32

    def __post_init__(self) -> None:
        for name in ("interval_minutes", "intent_threshold"):
            _require_number(name, getattr(self, name))
        for name in (
            "max_intent_attempts",
            "storage_retry_attempts",
            "storage_retry_delay_ms",
            "command_buffer",
        ):
            _require_int(name, getattr(self, name))
        if self.interval_minutes <= 0:
            raise ConfigError("interval_minutes must be > 0")
        if self.max_intent_attempts < 1:
            raise ConfigError("max_intent_attempts must be at least 1")
        if self.storage_retry_attempts < 1:
            raise ConfigError("storage_retry_attempts must be at least 1")
        if self.storage_retry_delay_ms < 0:
            raise ConfigError("storage_retry_delay_ms must be >= 0")
        if self.command_buffer < 1:
            raise ConfigError("command_buffer must be at least 1")

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    @property
    def storage_retry(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=self.storage_retry_attempts,
            delay_seconds=self.storage_retry_delay_ms / 1000,
        )


@dataclass
class AgentConfig:
    """Reasoning runtime settings."""

    max_react_steps: int = 1
    persona: str = "TelosOps"


@dataclass
class LLMConfig:
    """Which LLM backs the runtime."""

    provider: str = "local_stub"
    model: str = "llama-3.1-70b-versatile"
    api_key_env: str = "GROQ_API_KEY"

    def __post_init__(self) -> None:
        if self.provider not in LLM_PROVIDERS:
            raise ConfigError(
                f"Unknown LLM provider {self.provider!r}; expected one of {', '.join(LLM_PROVIDERS)}"
            )


@dataclass
class TelegramConfig:
    bot_token: str
    default_alignment: float = 0.6

    def __post_init__(self) -> None:
        try:
            self.default_alignment = float(self.default_alignment)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"default_alignment must be a number, got {self.default_alignment!r}") from e


@dataclass
class AppConfig:
    """Everything the daemon needs, grouped by concern."""

    root: Path
    beat: BeatConfig = field(default_factory=BeatConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    telegram: TelegramConfig | None = None

    @property
    def data_dir(self) -> Path:
        return self.root / "data"

    @property
    def config_dir(self) -> Path:
        return self.root / "config"

    @classmethod
    def load(cls, root: Path | None = None) -> "AppConfig":
        """Load settings from ``<root>/config/*.yml`` and the environment.

        Missing files fall back to defaults.

        Raises:
            ConfigError: If a file is not valid YAML or a value is invalid.
        """
        if root is None:
            root = Path(os.getenv("TELOS_APP_ROOT") or Path.cwd())
        config_dir = root / "config"

        beat_data = _load_yaml(config_dir / "beat.yml")
        agent_data = _load_yaml(config_dir / "agent.yml")
        llm_data = _load_yaml(config_dir / "llm.yml")
        telegram_data = _load_yaml(config_dir / "telegram.yml")

        if "TELOS_BEAT_INTERVAL_MINUTES" in os.environ:
            beat_data["interval_minutes"] = _env_float("TELOS_BEAT_INTERVAL_MINUTES")
        if "TELOS_INTENT_THRESHOLD" in os.environ:
            beat_data["intent_threshold"] = _env_float("TELOS_INTENT_THRESHOLD")
        if os.getenv("TELOS_LLM_PROVIDER"):
            llm_data["provider"] = os.environ["TELOS_LLM_PROVIDER"]
        if os.getenv("GROQ_MODEL"):
            llm_data["model"] = os.environ["GROQ_MODEL"]

        token = os.getenv("TELEGRAM_TOKEN") or telegram_data.get("bot_token")
        telegram = None
        if token:
            telegram = TelegramConfig(
                bot_token=str(token),
                default_alignment=telegram_data.get("default_alignment", 0.6),
            )

        return cls(
            root=root,
            beat=_build(BeatConfig, beat_data, "beat.yml"),
            agent=_build(AgentConfig, agent_data, "agent.yml"),
            llm=_build(LLMConfig, llm_data, "llm.yml"),
            telegram=telegram,
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return data


def _build(cls: type, data: dict[str, Any], source: str) -> Any:
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid settings in {source}: {e}") from e


def _require_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")


def _require_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str) -> float:
    value = os.environ[name]
    try:
        return float(value)
    except ValueError as e:
        raise ConfigError(f"Invalid number for {name}: {value!r}") from e
