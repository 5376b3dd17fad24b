"""OpenAI provider adapter."""

from .client import OpenAIProvider

__all__ = ["OpenAIProvider"]
