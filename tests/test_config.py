"""Tests for application configuration loading."""

from pathlib import Path

import pytest

from telos.config import AppConfig, BeatConfig, LLMConfig
from telos.errors import ConfigError

ENV_VARS = (
    "TELOS_APP_ROOT",
    "TELOS_BEAT_INTERVAL_MINUTES",
    "TELOS_INTENT_THRESHOLD",
    "TELOS_LLM_PROVIDER",
    "GROQ_MODEL",
    "TELEGRAM_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def write_config(root: Path, name: str, content: str) -> None:
    config_dir = root / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / name).write_text(content, encoding="utf-8")


class TestBeatConfig:
    """Tests for BeatConfig validation."""

    def test_defaults(self) -> None:
        """Defaults match the documented values."""
        config = BeatConfig()

        assert config.interval_seconds == 300
        assert config.intent_threshold == 0.5
        assert config.max_intent_attempts == 3
        assert config.storage_retry.attempts == 3
        assert config.storage_retry.delay_seconds == 0.2

    def test_rejects_non_positive_interval(self) -> None:
        """The interval must be positive."""
        with pytest.raises(ConfigError):
            BeatConfig(interval_minutes=0)

    def test_rejects_zero_attempts(self) -> None:
        """At least one processing attempt is required."""
        with pytest.raises(ConfigError):
            BeatConfig(max_intent_attempts=0)

    def test_rejects_non_numeric_threshold(self) -> None:
        """The threshold must be a number, not a string or a bool."""
        with pytest.raises(ConfigError, match="intent_threshold"):
            BeatConfig(intent_threshold="high")
        with pytest.raises(ConfigError, match="intent_threshold"):
            BeatConfig(intent_threshold=True)


class TestAppConfigLoad:
    """Tests for AppConfig.load."""

    def test_missing_files_use_defaults(self, tmp_path: Path) -> None:
        """An empty root yields default settings."""
        config = AppConfig.load(tmp_path)

        assert config.data_dir == tmp_path / "data"
        assert config.beat.interval_minutes == 5
        assert config.agent.persona == "TelosOps"
        assert config.llm.provider == "local_stub"
        assert config.telegram is None

    def test_reads_yaml_files(self, tmp_path: Path) -> None:
        """Values from config/*.yml override defaults."""
        write_config(tmp_path, "beat.yml", "interval_minutes: 1\nintent_threshold: 0.7\n")
        write_config(tmp_path, "agent.yml", "max_react_steps: 2\npersona: Planner\n")
        write_config(tmp_path, "llm.yml", "provider: groq\nmodel: custom\n")

        config = AppConfig.load(tmp_path)

        assert config.beat.interval_minutes == 1
        assert config.beat.intent_threshold == 0.7
        assert config.agent.max_react_steps == 2
        assert config.agent.persona == "Planner"
        assert config.llm.provider == "groq"
        assert config.llm.model == "custom"

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables win over files."""
        write_config(tmp_path, "beat.yml", "interval_minutes: 1\n")
        monkeypatch.setenv("TELOS_BEAT_INTERVAL_MINUTES", "10")
        monkeypatch.setenv("TELOS_INTENT_THRESHOLD", "0.25")
        monkeypatch.setenv("GROQ_MODEL", "env-model")

        config = AppConfig.load(tmp_path)

        assert config.beat.interval_minutes == 10
        assert config.beat.intent_threshold == 0.25
        assert config.llm.model == "env-model"

    def test_root_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """TELOS_APP_ROOT selects the root when none is given."""
        monkeypatch.setenv("TELOS_APP_ROOT", str(tmp_path))

        config = AppConfig.load()

        assert config.root == tmp_path

    def test_telegram_token_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A token enables the Telegram settings."""
        write_config(tmp_path, "telegram.yml", "default_alignment: 0.8\n")
        monkeypatch.setenv("TELEGRAM_TOKEN", "123:abc")

        config = AppConfig.load(tmp_path)

        assert config.telegram is not None
        assert config.telegram.bot_token == "123:abc"
        assert config.telegram.default_alignment == 0.8

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Broken YAML is a configuration error."""
        write_config(tmp_path, "beat.yml", "interval_minutes: [1\n")

        with pytest.raises(ConfigError):
            AppConfig.load(tmp_path)

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Unknown settings are rejected."""
        write_config(tmp_path, "agent.yml", "temperature: 3\n")

        with pytest.raises(ConfigError, match="agent.yml"):
            AppConfig.load(tmp_path)

    def test_unknown_provider(self) -> None:
        """Only known providers are accepted."""
        with pytest.raises(ConfigError):
            LLMConfig(provider="openai")

    def test_invalid_env_number(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Non-numeric overrides are rejected."""
        monkeypatch.setenv("TELOS_INTENT_THRESHOLD", "high")

        with pytest.raises(ConfigError):
            AppConfig.load(tmp_path)

    def test_non_numeric_threshold_in_file(self, tmp_path: Path) -> None:
        """A non-numeric threshold in beat.yml is a configuration error."""
        write_config(tmp_path, "beat.yml", "intent_threshold: high\n")

        with pytest.raises(ConfigError, match="intent_threshold"):
            AppConfig.load(tmp_path)

    def test_non_numeric_default_alignment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A non-numeric Telegram alignment is a configuration error."""
        write_config(tmp_path, "telegram.yml", "default_alignment: high\n")
        monkeypatch.setenv("TELEGRAM_TOKEN", "123:abc")

        with pytest.raises(ConfigError, match="default_alignment"):
            AppConfig.load(tmp_path)
