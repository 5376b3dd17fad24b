"""OpenAIProvider adapter for the Chat Completions API.

Adds the optional ``OpenAI-Organization`` header on top of the shared
OpenAI-style base, and prices calls from ``OPENAI_PRICING_PER_1K``.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from ..base.capabilities import CapabilityDescriptor
from ..base.openai_style_parts import BaseOpenAIStyleProvider
from ..base.models import TokenUsage
from ..config.defaults import LONG_TIMEOUT_MS, OPENAI_DEFAULT_BASE_URL, OPENAI_DEFAULT_MODEL, OPENAI_PRICING_PER_1K
from ..config.provider_config import ProviderConfig


class OpenAIProvider(BaseOpenAIStyleProvider):
    name = "openai"
    default_base_url = OPENAI_DEFAULT_BASE_URL
    default_model_name = OPENAI_DEFAULT_MODEL
    default_timeout_ms = LONG_TIMEOUT_MS
    capabilities = CapabilityDescriptor(
        chat=True,
        stream=True,
        vision=True,
        speech=True,
        embedding=False,
        function_calling=True,
        max_context_length=128000,
        supported_languages=frozenset({"en", "zh", "ja", "ko", "fr", "de", "es", "ru"}),
        models=("gpt-3.5-turbo", "gpt-4", "gpt-4-turbo", "gpt-4o"),
    )

    def auth_headers(self, config: ProviderConfig) -> Dict[str, str]:
        headers = super().auth_headers(config)
        if config.organization:
            headers["OpenAI-Organization"] = config.organization
        return headers

    def estimate_cost(self, usage: Optional[TokenUsage], model: str) -> float:
        if usage is None:
            return 0.0
        prompt_rate, completion_rate = _pricing_for(model)
        return (usage.prompt_tokens * prompt_rate + usage.completion_tokens * completion_rate) / 1000.0


def _pricing_for(model: str) -> Tuple[float, float]:
    """Exact match, then the longest listed prefix (dated snapshots), then the default model."""
    name = (model or "").lower()
    if name in OPENAI_PRICING_PER_1K:
        return OPENAI_PRICING_PER_1K[name]
    prefixes = [key for key in OPENAI_PRICING_PER_1K if name.startswith(key + "-")]
    if prefixes:
        return OPENAI_PRICING_PER_1K[max(prefixes, key=len)]
    return OPENAI_PRICING_PER_1K[OPENAI_DEFAULT_MODEL]


__all__ = ["OpenAIProvider"]
