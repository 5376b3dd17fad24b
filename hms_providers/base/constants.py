"""Base shared constants for provider adapters.

# pragma: allowlist secret
"""
from __future__ import annotations

# Missing credential message template
MISSING_API_KEY_MESSAGE = "{provider} API key is not configured"  # pragma: allowlist secret - message template, not a secret

NOT_INITIALIZED_MESSAGE = "{provider} provider is not initialized"

# Relative path of the OpenAI-compatible listing endpoint used as init probe
MODELS_PATH = "models"
CHAT_COMPLETIONS_PATH = "chat/completions"

__all__ = [
    "MISSING_API_KEY_MESSAGE",
    "NOT_INITIALIZED_MESSAGE",
    "MODELS_PATH",
    "CHAT_COMPLETIONS_PATH",
]
