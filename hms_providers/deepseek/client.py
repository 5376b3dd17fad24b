"""DeepseekProvider adapter using the OpenAI-compatible Chat Completions API.

Shares request/response translation with ``BaseOpenAIStyleProvider`` and
keeps the DeepSeek-specific defaults (base URL, model, capabilities).
"""

from __future__ import annotations

from ..base.capabilities import CapabilityDescriptor
from ..base.openai_style_parts import BaseOpenAIStyleProvider
from ..config.defaults import DEEPSEEK_DEFAULT_BASE_URL, DEEPSEEK_DEFAULT_MODEL, DEFAULT_TIMEOUT_MS


class DeepseekProvider(BaseOpenAIStyleProvider):
    """DeepSeek chat models (``deepseek-chat``, ``deepseek-coder``)."""

    name = "deepseek"
    default_base_url = DEEPSEEK_DEFAULT_BASE_URL
    default_model_name = DEEPSEEK_DEFAULT_MODEL
    default_timeout_ms = DEFAULT_TIMEOUT_MS
    capabilities = CapabilityDescriptor(
        chat=True,
        stream=True,
        function_calling=True,
        max_context_length=16384,
        supported_languages=frozenset({"zh", "en"}),
        models=("deepseek-chat", "deepseek-coder"),
    )


__all__ = ["DeepseekProvider"]
