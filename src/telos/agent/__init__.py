"""Reasoning runtime and LLM clients."""

from .llm import GroqLLMClient, LLMClient, LocalStubClient
from .models import AgentInput, AgentOutcome, AgentRun, AgentStep, LLMIdentity, LLMLogEntry
from .runtime import AgentRuntime

__all__ = [
    "AgentInput",
    "AgentOutcome",
    "AgentRun",
    "AgentRuntime",
    "AgentStep",
    "GroqLLMClient",
    "LLMClient",
    "LLMIdentity",
    "LLMLogEntry",
    "LocalStubClient",
]
