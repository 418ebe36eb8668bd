"""Exception types shared across telos."""

from pathlib import Path


class TelosError(Exception):
    """Base class for telos errors."""

    pass


class ConfigError(TelosError):
    """Raised when configuration files or values are invalid."""

    pass


class IntentParseError(TelosError):
    """Raised when an intent record header cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot parse intent header in {path}: {reason}")


class InvalidTransitionError(TelosError):
    """Raised when an intent is moved along an edge that does not exist."""

    def __init__(self, source: object, target: object) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Invalid intent transition: {source} -> {target}")


class LLMError(TelosError):
    """Raised when the LLM backend fails or returns no usable content."""

    pass


class AgentResponseError(TelosError):
    """Raised when a THINK or FINAL payload is not the expected JSON."""

    pass
