"""hms_providers.config.defaults
===============================

Small, stable default values used across the provider layer and the thin
service. Everything here can be overridden through environment variables or
the external config file; this module only holds plain constants (no I/O,
no imports from other provider packages).
"""

from __future__ import annotations

# ---- Vendor defaults ----
DEEPSEEK_DEFAULT_BASE_URL = "https://api.deepseek.com/v1"
DEEPSEEK_DEFAULT_MODEL = "deepseek-chat"

GEMINI_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_DEFAULT_MODEL = "gemini-pro"

KIMI_DEFAULT_BASE_URL = "https://api.moonshot.cn/v1"
KIMI_DEFAULT_MODEL = "moonshot-v1-8k"

OPENAI_DEFAULT_BASE_URL = "https://api.openai.com/v1"
OPENAI_DEFAULT_MODEL = "gpt-3.5-turbo"
# USD per 1K tokens: (prompt, completion). Unlisted models bill as the default model.
OPENAI_PRICING_PER_1K = {
    "gpt-4o": (0.005, 0.015),
    "gpt-4-turbo": (0.01, 0.03),
    "gpt-4-turbo-preview": (0.01, 0.03),
    "gpt-4": (0.03, 0.06),
    "gpt-4-32k": (0.06, 0.12),
    "gpt-3.5-turbo": (0.0005, 0.0015),
    "gpt-3.5-turbo-16k": (0.001, 0.002),
}

# Per-attempt request timeout (milliseconds).
DEFAULT_TIMEOUT_MS = 30_000
# Moonshot and OpenAI answer long prompts slowly.
LONG_TIMEOUT_MS = 60_000

# Configuration order doubles as the failover order.
DEFAULT_PROVIDER_ORDER = ("deepseek", "gemini", "kimi", "openai")

# Sampling defaults applied when a request leaves them unset.
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TOP_P = 0.95

# ---- Resilience ----
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_MS = 1_000
DEFAULT_MAX_DELAY_MS = 10_000
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_JITTER = 0.1
DEFAULT_DEGRADED_THRESHOLD = 3
DEFAULT_LATENCY_EMA_ALPHA = 0.1
# 0 disables the periodic probe loop
DEFAULT_HEALTH_CHECK_INTERVAL_MS = 60_000

# ---- Service / HTTP layer ----
PROVIDER_SERVICE_DEFAULT_HOST = "127.0.0.1"
PROVIDER_SERVICE_DEFAULT_PORT = 8091
PROVIDER_SERVICE_CORS_DEFAULT_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173"

MEDICAL_ASSISTANT_SYSTEM_PROMPT = (
    "You are a professional medical AI assistant supporting hospital staff. "
    "Provide accurate, careful information, state uncertainty clearly and "
    "recommend consulting a qualified physician for diagnosis and treatment."
)


__all__ = [
    "DEEPSEEK_DEFAULT_BASE_URL",
    "DEEPSEEK_DEFAULT_MODEL",
    "GEMINI_DEFAULT_BASE_URL",
    "GEMINI_DEFAULT_MODEL",
    "KIMI_DEFAULT_BASE_URL",
    "KIMI_DEFAULT_MODEL",
    "OPENAI_DEFAULT_BASE_URL",
    "OPENAI_DEFAULT_MODEL",
    "OPENAI_PRICING_PER_1K",
    "DEFAULT_TIMEOUT_MS",
    "LONG_TIMEOUT_MS",
    "DEFAULT_PROVIDER_ORDER",
    "DEFAULT_TEMPERATURE",
    "DEFAULT_MAX_TOKENS",
    "DEFAULT_TOP_P",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_BASE_DELAY_MS",
    "DEFAULT_MAX_DELAY_MS",
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_JITTER",
    "DEFAULT_DEGRADED_THRESHOLD",
    "DEFAULT_LATENCY_EMA_ALPHA",
    "DEFAULT_HEALTH_CHECK_INTERVAL_MS",
    "PROVIDER_SERVICE_DEFAULT_HOST",
    "PROVIDER_SERVICE_DEFAULT_PORT",
    "PROVIDER_SERVICE_CORS_DEFAULT_ORIGINS",
    "MEDICAL_ASSISTANT_SYSTEM_PROMPT",
]
