"""LLM client implementations for the reasoning runtime.

The runtime only depends on the LLMClient Protocol, so the Groq client and
the deterministic local stub are interchangeable.
"""

import json
from typing import Any, Protocol

from groq import AsyncGroq

from ..errors import LLMError
from .models import LLMIdentity
from .prompt import SYSTEM_PROMPT, extract_value


class LLMClient(Protocol):
    """Anything that can answer a prompt with text."""

    async def chat(self, prompt: str) -> str: ...

    def identity(self) -> LLMIdentity: ...


class LocalStubClient:
    """Deterministic client for tests and offline runs.

    Answers THINK prompts with a fixed step and FINAL prompts with
    ``"<persona> completed the plan for '<intent>'"``.
    """

    async def chat(self, prompt: str) -> str:
        if "# Phase: THINK" in prompt:
            intent = extract_value(prompt, "Intent:") or "intent"
            try:
                backlog = int(extract_value(prompt, "Backlog:") or 0)
            except ValueError:
                backlog = 0
            return json.dumps({
                "thought": f"Focus on intent '{intent}' using available context",
                "action": "summarize_intent",
                "observation": f"Remaining backlog count: {backlog}",
            })

        if "# Phase: FINAL" in prompt:
            intent = extract_value(prompt, "Intent:") or "intent"
            persona = extract_value(prompt, "Persona:") or "Agent"
            return json.dumps({
                "final_answer": f"{persona} completed the plan for '{intent}'",
            })

        raise LLMError("stub LLM only supports THINK and FINAL phases")

    def identity(self) -> LLMIdentity:
        return LLMIdentity(provider="local_stub", model="local_stub")


class GroqLLMClient:
    """LLMClient implementation that wraps AsyncGroq.

    Example:
        from groq import AsyncGroq
        from telos.agent.llm import GroqLLMClient

        llm = GroqLLMClient(AsyncGroq(api_key="..."), model="llama-3.1-70b-versatile")
        raw = await llm.chat("# Phase: FINAL\\nIntent: ...")
    """

    def __init__(
        self,
        client: AsyncGroq,
        model: str = "llama-3.1-70b-versatile",
        temperature: float = 0.2,
    ) -> None:
        """Initialize the Groq client wrapper.

        Args:
            client: The AsyncGroq client instance to wrap.
            model: The model to use for completions.
            temperature: Sampling temperature.
        """
        self._client = client
        self._model = model
        self._temperature = temperature

    async def chat(self, prompt: str) -> str:
        """Send one prompt and return the message content.

        Raises:
            LLMError: If the request fails or the reply has no content.
        """
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                response_format={"type": "json_object"},
            )
        except Exception as e:
            raise LLMError(f"Groq request failed: {e}") from e

        if not response.choices:
            raise LLMError("missing message content in Groq response")
        content = response.choices[0].message.content
        if not content:
            raise LLMError("missing message content in Groq response")
        return content

    def identity(self) -> LLMIdentity:
        return LLMIdentity(provider="groq", model=self._model)

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model
