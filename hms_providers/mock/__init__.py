"""Mock provider package: scripted, network-free adapter for tests and demos."""

from .client import DEFAULT_MOCK_MODEL, DEFAULT_MOCK_REPLY, MockProvider, ScriptedSource

__all__ = ["MockProvider", "ScriptedSource", "DEFAULT_MOCK_REPLY", "DEFAULT_MOCK_MODEL"]
