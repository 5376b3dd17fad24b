"""KimiProvider adapter for Moonshot AI (OpenAI-compatible).

Moonshot reports streaming usage inside the final choice rather than at the
top level; the shared translator accepts both placements.
"""

from __future__ import annotations

from ..base.capabilities import CapabilityDescriptor
from ..base.openai_style_parts import BaseOpenAIStyleProvider
from ..config.defaults import KIMI_DEFAULT_BASE_URL, KIMI_DEFAULT_MODEL, LONG_TIMEOUT_MS


class KimiProvider(BaseOpenAIStyleProvider):
    """Moonshot long-context models."""

    name = "kimi"
    default_base_url = KIMI_DEFAULT_BASE_URL
    default_model_name = KIMI_DEFAULT_MODEL
    default_timeout_ms = LONG_TIMEOUT_MS
    capabilities = CapabilityDescriptor(
        chat=True,
        stream=True,
        max_context_length=128000,
        supported_languages=frozenset({"zh", "en"}),
        models=("moonshot-v1-8k", "moonshot-v1-32k", "moonshot-v1-128k"),
    )


__all__ = ["KimiProvider"]
