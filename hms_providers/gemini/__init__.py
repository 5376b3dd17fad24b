"""Google Gemini provider adapter."""

from .client import GeminiProvider

__all__ = ["GeminiProvider"]
