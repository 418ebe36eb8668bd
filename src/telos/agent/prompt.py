"""Prompt builders for the THINK and FINAL phases."""

from .models import AgentStep

SYSTEM_PROMPT = (
    "You are TelosOps agent executing a ReAct loop. Always answer with valid JSON."
)

THINK_TEMPLATE = """# Phase: THINK
Intent: {intent}
Backlog: {backlog}
Persona: {persona}
Step: {step}
History:
{history}
Respond with JSON containing thought, action, observation."""

FINAL_TEMPLATE = """# Phase: FINAL
Intent: {intent}
Persona: {persona}
History:
{history}
Respond with JSON containing final_answer."""


def format_history(steps: list[AgentStep]) -> str:
    """One line per step, or ``(none)`` before the first step."""
    if not steps:
        return "(none)"
    return "\n".join(
        f"{idx}. Thought: {step.thought} | Action: {step.action} | Observation: {step.observation}"
        for idx, step in enumerate(steps, start=1)
    )


def build_think_prompt(
    intent: str,
    backlog: int,
    persona: str,
    step: int,
    steps: list[AgentStep],
) -> str:
    return THINK_TEMPLATE.format(
        intent=intent,
        backlog=backlog,
        persona=persona,
        step=step,
        history=format_history(steps),
    )


def build_final_prompt(intent: str, persona: str, steps: list[AgentStep]) -> str:
    return FINAL_TEMPLATE.format(
        intent=intent,
        persona=persona,
        history=format_history(steps),
    )


def extract_value(prompt: str, prefix: str) -> str | None:
    """Value of the first line starting with prefix, e.g. ``Intent:``."""
    for line in prompt.splitlines():
        stripped = line.strip()
        if stripped.startswith(prefix):
            return stripped[len(prefix):].strip()
    return None
