"""hms_providers.config.env
========================

Provider → environment variable mapping for credentials and endpoints.

``ENV_ALIASES`` lists additional accepted names with the canonical one
first (for example ``GOOGLE_API_KEY`` for Gemini). Helpers never raise on
unknown providers or unset variables; callers decide what a missing value
means.
"""

from __future__ import annotations

import os
from typing import Dict, Optional, Tuple

ENV_MAP: Dict[str, str] = {
    "deepseek": "DEEPSEEK_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "kimi": "KIMI_API_KEY",
    "openai": "OPENAI_API_KEY",
}

ENV_ALIASES: Dict[str, Tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "kimi": ("KIMI_API_KEY", "MOONSHOT_API_KEY"),
}

# config field -> env suffix (prefix is the upper-cased provider name)
ENV_FIELD_MAP: Dict[str, Tuple[str, ...]] = {
    "api_base": ("API_BASE", "BASE_URL"),
    "default_model": ("MODEL",),
    "timeout_ms": ("TIMEOUT_MS",),
    "organization": ("ORGANIZATION",),
    "max_retries": ("MAX_RETRIES",),
}


def is_placeholder(val: Optional[str]) -> bool:
    """Return True if ``val`` looks like a placeholder rather than a real value.

    Heuristics (case-insensitive): contains ``placeholder``, ``changeme`` or
    ``your_``, or starts with ``test_``.
    """
    if val is None:
        return False
    s = val.strip().lower()
    if not s:
        return False
    return "placeholder" in s or "changeme" in s or "your_" in s or s.startswith("test_")


def env_names_for(provider: str) -> Tuple[str, ...]:
    """Return the accepted API key variable names for ``provider``."""
    name = (provider or "").lower().strip()
    if name in ENV_ALIASES:
        return ENV_ALIASES[name]
    canonical = ENV_MAP.get(name)
    return (canonical,) if canonical else (f"{name.upper()}_API_KEY",)


def get_env_api_key(provider: str) -> Optional[str]:
    """Return the first non-empty, non-placeholder API key for ``provider``."""
    for env_name in env_names_for(provider):
        val = os.getenv(env_name)
        if val and not is_placeholder(val):
            return val.strip()
    return None


__all__ = [
    "ENV_MAP",
    "ENV_ALIASES",
    "ENV_FIELD_MAP",
    "is_placeholder",
    "env_names_for",
    "get_env_api_key",
]
