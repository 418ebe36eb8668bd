"""Telos: a beat orchestrator that turns queued intents into journaled outcomes."""

__version__ = "0.1.0"
