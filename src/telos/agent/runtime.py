"""ReAct runtime: a fixed number of THINK steps followed by one FINAL step."""

from __future__ import annotations

import json
import logging
import os
import uuid
from typing import TYPE_CHECKING, Any

from groq import AsyncGroq

from ..errors import AgentResponseError
from ..intents.models import utc_now
from .llm import GroqLLMClient, LLMClient, LocalStubClient
from .models import AgentInput, AgentOutcome, AgentRun, AgentStep, LLMLogEntry
from .prompt import build_final_prompt, build_think_prompt

if TYPE_CHECKING:
    from ..config import AgentConfig, AppConfig

logger = logging.getLogger(__name__)


def _decode(raw: str, phase: str) -> dict[str, Any]:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise AgentResponseError(f"parsing {phase} response: {raw}") from e
    if not isinstance(payload, dict):
        raise AgentResponseError(f"{phase} response is not a JSON object: {raw}")
    return payload


class AgentRuntime:
    """Runs the reasoning loop for one intent at a time."""

    def __init__(self, config: AgentConfig, llm: LLMClient) -> None:
        self.config = config
        self.llm = llm

    @classmethod
    def from_config(cls, config: AppConfig) -> AgentRuntime:
        """Build a runtime with the client selected by ``llm.provider``."""
        llm: LLMClient
        if config.llm.provider == "groq":
            client = AsyncGroq(api_key=os.getenv(config.llm.api_key_env))
            llm = GroqLLMClient(client, model=config.llm.model)
        else:
            llm = LocalStubClient()
        return cls(config.agent, llm)

    async def run_react(self, agent_input: AgentInput) -> AgentRun:
        """Produce an outcome for one intent.

        Args:
            agent_input: The intent and the current backlog size.

        Returns:
            AgentRun with the outcome and one log entry per LLM call.

        Raises:
            LLMError: If the LLM call fails.
            AgentResponseError: If a reply is not the expected JSON.
        """
        intent = agent_input.intent
        persona = self.config.persona
        run_id = uuid.uuid4()
        identity = self.llm.identity()
        steps: list[AgentStep] = []
        llm_logs: list[LLMLogEntry] = []

        for step_index in range(max(self.config.max_react_steps, 1)):
            prompt = build_think_prompt(
                intent.summary,
                agent_input.backlog_size,
                persona,
                step_index + 1,
                steps,
            )
            raw = await self.llm.chat(prompt)
            llm_logs.append(
                LLMLogEntry.create(run_id, utc_now(), "THINK", prompt, raw, identity)
            )
            payload = _decode(raw, "THINK")
            try:
                steps.append(AgentStep.from_dict(payload))
            except KeyError as e:
                raise AgentResponseError(f"THINK response missing field {e}: {raw}") from e

        final_prompt = build_final_prompt(intent.summary, persona, steps)
        final_raw = await self.llm.chat(final_prompt)
        llm_logs.append(
            LLMLogEntry.create(run_id, utc_now(), "FINAL", final_prompt, final_raw, identity)
        )
        final_payload = _decode(final_raw, "FINAL")
        if "final_answer" not in final_payload:
            raise AgentResponseError(f"FINAL response missing final_answer: {final_raw}")

        logger.debug("Agent run %s finished with %d step(s)", run_id, len(steps))
        return AgentRun(
            outcome=AgentOutcome(
                steps=tuple(steps),
                final_answer=str(final_payload["final_answer"]),
            ),
            llm_logs=llm_logs,
        )
