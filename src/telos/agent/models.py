"""Data models for the reasoning runtime."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..intents.models import Intent


@dataclass(frozen=True)
class AgentInput:
    """What the runtime receives for one intent."""

    intent: Intent
    backlog_size: int


@dataclass(frozen=True)
class AgentStep:
    """One THINK step of the ReAct trace."""

    thought: str
    action: str
    observation: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentStep":
        """Build a step from a decoded THINK payload.

        Raises:
            KeyError: If a field is missing.
        """
        return cls(
            thought=str(data["thought"]),
            action=str(data["action"]),
            observation=str(data["observation"]),
        )


@dataclass(frozen=True)
class AgentOutcome:
    """Ordered trace steps and the final answer."""

    steps: tuple[AgentStep, ...]
    final_answer: str


@dataclass(frozen=True)
class LLMIdentity:
    """Provider and model that answered a prompt."""

    provider: str
    model: str | None = None


@dataclass(frozen=True)
class LLMLogEntry:
    """One prompt/response pair recorded for audit."""

    run_id: uuid.UUID
    timestamp: datetime
    phase: str
    prompt: str
    response: str
    provider: str
    model: str | None = None

    @classmethod
    def create(
        cls,
        run_id: uuid.UUID,
        timestamp: datetime,
        phase: str,
        prompt: str,
        response: str,
        identity: LLMIdentity,
    ) -> "LLMLogEntry":
        return cls(
            run_id=run_id,
            timestamp=timestamp,
            phase=phase,
            prompt=prompt,
            response=response,
            provider=identity.provider,
            model=identity.model,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": str(self.run_id),
            "timestamp": self.timestamp.isoformat(),
            "phase": self.phase,
            "prompt": self.prompt,
            "response": self.response,
            "provider": self.provider,
            "model": self.model,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LLMLogEntry":
        return cls(
            run_id=uuid.UUID(data["run_id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            phase=data["phase"],
            prompt=data["prompt"],
            response=data["response"],
            provider=data["provider"],
            model=data.get("model"),
        )


@dataclass(frozen=True)
class AgentRun:
    """Outcome of one runtime call plus the LLM calls that produced it."""

    outcome: AgentOutcome
    llm_logs: list[LLMLogEntry] = field(default_factory=list)
