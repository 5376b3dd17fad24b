"""Pytest configuration for the providers test suite.

Every test runs with a clean provider environment: vendor keys, manager
tuning variables and the external config file are unset, and the cached
config document is dropped, so nothing on the developer machine leaks in.
"""

from __future__ import annotations

from typing import Iterator, List

import pytest

from hms_providers.base.resilience.retry import BackoffSchedule, RetryConfig, RetryPolicy
from hms_providers.config import reset_config_cache
from hms_providers.config.settings import ManagerSettings

_PROVIDER_PREFIXES = ("DEEPSEEK", "GEMINI", "KIMI", "OPENAI", "MOCK")
_PROVIDER_SUFFIXES = ("API_KEY", "API_BASE", "BASE_URL", "MODEL", "TIMEOUT_MS", "ORGANIZATION", "MAX_RETRIES")
_GLOBAL_VARS = (
    "GOOGLE_API_KEY",
    "MOONSHOT_API_KEY",
    "PROVIDERS_CONFIG_FILE",
    "AI_PROVIDERS",
    "DEFAULT_AI_PROVIDER",
    "AI_MAX_ATTEMPTS",
    "AI_BASE_DELAY_MS",
    "AI_MAX_DELAY_MS",
    "AI_JITTER",
    "AI_DEGRADED_THRESHOLD",
    "AI_ENABLE_FAILOVER",
    "AI_LATENCY_EMA_ALPHA",
    "AI_HEALTH_CHECK_INTERVAL_MS",
    "PROVIDER_SERVICE_CORS_ORIGINS",
)


@pytest.fixture(autouse=True)
def clean_provider_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Iterator[None]:
    """Unset provider variables and point the .env loader at a missing file."""
    for prefix in _PROVIDER_PREFIXES:
        for suffix in _PROVIDER_SUFFIXES:
            monkeypatch.delenv(f"{prefix}_{suffix}", raising=False)
    for name in _GLOBAL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DOTENV_FILE", str(tmp_path / "absent.env"))
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture()
def sleeps() -> List[float]:
    """Delays requested by retry policies built with ``fast_retry``."""
    return []


@pytest.fixture()
def fast_retry(sleeps: List[float]) -> RetryPolicy:
    """Three-attempt policy that records delays instead of sleeping."""
    config = RetryConfig(max_attempts=3, backoff=BackoffSchedule(base_delay=0.01, max_delay=0.1, jitter=0.0))
    return RetryPolicy(config, sleep=sleeps.append, rng=lambda: 0.0)


@pytest.fixture()
def manager_settings() -> ManagerSettings:
    """Manager tuning for tests: short backoff, low degraded threshold."""
    return ManagerSettings(max_attempts=2, base_delay_ms=1, max_delay_ms=5, jitter=0.0, degraded_threshold=2, health_check_interval_ms=0)
