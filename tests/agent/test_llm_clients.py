"""Tests for the LLM client implementations."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from telos.agent import GroqLLMClient, LocalStubClient
from telos.agent.prompt import build_final_prompt, build_think_prompt
from telos.errors import LLMError


def make_groq(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    groq = MagicMock()
    groq.chat.completions.create = AsyncMock(return_value=response)
    return groq


class TestLocalStubClient:
    """Tests for the deterministic stub."""

    @pytest.mark.asyncio
    async def test_think_reply(self) -> None:
        """THINK prompts get a fixed step mentioning the intent and backlog."""
        stub = LocalStubClient()
        prompt = build_think_prompt("Plan week", 4, "TelosOps", 1, [])

        payload = json.loads(await stub.chat(prompt))

        assert payload == {
            "thought": "Focus on intent 'Plan week' using available context",
            "action": "summarize_intent",
            "observation": "Remaining backlog count: 4",
        }

    @pytest.mark.asyncio
    async def test_final_reply(self) -> None:
        """FINAL prompts get the persona's completion message."""
        stub = LocalStubClient()
        prompt = build_final_prompt("Plan week", "TelosOps", [])

        payload = json.loads(await stub.chat(prompt))

        assert payload == {"final_answer": "TelosOps completed the plan for 'Plan week'"}

    @pytest.mark.asyncio
    async def test_unknown_phase_raises(self) -> None:
        """Other prompts are rejected."""
        with pytest.raises(LLMError):
            await LocalStubClient().chat("hello")

    def test_identity(self) -> None:
        """The stub reports itself as local_stub."""
        identity = LocalStubClient().identity()

        assert identity.provider == "local_stub"
        assert identity.model == "local_stub"


class TestGroqLLMClient:
    """Tests for the Groq wrapper."""

    def test_stores_model(self) -> None:
        """Should store the model name."""
        client = GroqLLMClient(MagicMock(), model="test-model")

        assert client.model == "test-model"
        assert client.identity().provider == "groq"
        assert client.identity().model == "test-model"

    @pytest.mark.asyncio
    async def test_chat_requests_json(self) -> None:
        """Should send system and user messages and ask for a JSON object."""
        groq = make_groq('{"final_answer": "x"}')
        client = GroqLLMClient(groq, model="test-model")

        result = await client.chat("# Phase: FINAL")

        assert result == '{"final_answer": "x"}'
        kwargs = groq.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1] == {"role": "user", "content": "# Phase: FINAL"}

    @pytest.mark.asyncio
    async def test_empty_content_raises(self) -> None:
        """A reply without content is an LLM error."""
        client = GroqLLMClient(make_groq(None))

        with pytest.raises(LLMError):
            await client.chat("prompt")

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self) -> None:
        """Client exceptions become LLMError."""
        groq = MagicMock()
        groq.chat.completions.create = AsyncMock(side_effect=RuntimeError("network down"))
        client = GroqLLMClient(groq)

        with pytest.raises(LLMError, match="network down"):
            await client.chat("prompt")
