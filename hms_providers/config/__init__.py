"""Unified configuration layer for providers.

Goals
-----
* Centralize defaults (base URLs, models, timeouts).
* Merge sources in a predictable order (later wins):
    1. Built-in defaults
    2. Optional external YAML/JSON file pointed to by ``PROVIDERS_CONFIG_FILE``
    3. Environment variables (``<PROVIDER>_API_KEY``, ``<PROVIDER>_API_BASE``...)
    4. In-code overrides passed to the helper
* Provide single call sites: ``get_provider_config(provider)``,
  ``load_provider_configs()`` and ``load_manager_settings()``.

Environment Variable Conventions
--------------------------------
``<PROVIDER>_API_KEY``, ``<PROVIDER>_API_BASE`` (or ``_BASE_URL``),
``<PROVIDER>_MODEL``, ``<PROVIDER>_TIMEOUT_MS``, ``<PROVIDER>_ORGANIZATION``,
``<PROVIDER>_MAX_RETRIES``. Manager: ``DEFAULT_AI_PROVIDER``,
``AI_PROVIDERS`` (comma-separated order), ``AI_MAX_ATTEMPTS``,
``AI_BASE_DELAY_MS``, ``AI_MAX_DELAY_MS``, ``AI_JITTER``,
``AI_DEGRADED_THRESHOLD``, ``AI_ENABLE_FAILOVER``, ``AI_LATENCY_EMA_ALPHA``.

External Config File
--------------------
``PROVIDERS_CONFIG_FILE`` may point to a YAML (or JSON) document::

    providers:
      deepseek:
        api_key: ${DEEPSEEK_API_KEY}
        timeout_ms: 20000
      gemini:
        default_model: gemini-pro
    order: [deepseek, gemini]
    manager:
      default_provider: deepseek
      max_attempts: 3

``${VAR}`` references inside string values are expanded from the environment.
"""
from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .defaults import (
    DEEPSEEK_DEFAULT_BASE_URL,
    DEEPSEEK_DEFAULT_MODEL,
    DEFAULT_PROVIDER_ORDER,
    DEFAULT_TIMEOUT_MS,
    GEMINI_DEFAULT_BASE_URL,
    GEMINI_DEFAULT_MODEL,
    KIMI_DEFAULT_BASE_URL,
    KIMI_DEFAULT_MODEL,
    LONG_TIMEOUT_MS,
    OPENAI_DEFAULT_BASE_URL,
    OPENAI_DEFAULT_MODEL,
)
from .env import ENV_FIELD_MAP, get_env_api_key, is_placeholder
from .provider_config import ProviderConfig, normalize_keys
from .settings import ManagerSettings


DEFAULTS: Dict[str, Dict[str, Any]] = {
    "deepseek": {
        "api_base": DEEPSEEK_DEFAULT_BASE_URL,
        "default_model": DEEPSEEK_DEFAULT_MODEL,
        "timeout_ms": DEFAULT_TIMEOUT_MS,
    },
    "gemini": {
        "api_base": GEMINI_DEFAULT_BASE_URL,
        "default_model": GEMINI_DEFAULT_MODEL,
        "timeout_ms": DEFAULT_TIMEOUT_MS,
    },
    "kimi": {
        "api_base": KIMI_DEFAULT_BASE_URL,
        "default_model": KIMI_DEFAULT_MODEL,
        "timeout_ms": LONG_TIMEOUT_MS,
    },
    "openai": {
        "api_base": OPENAI_DEFAULT_BASE_URL,
        "default_model": OPENAI_DEFAULT_MODEL,
        "timeout_ms": LONG_TIMEOUT_MS,
    },
}

_MANAGER_ENV_MAP = {
    "default_provider": "DEFAULT_AI_PROVIDER",
    "max_attempts": "AI_MAX_ATTEMPTS",
    "base_delay_ms": "AI_BASE_DELAY_MS",
    "max_delay_ms": "AI_MAX_DELAY_MS",
    "jitter": "AI_JITTER",
    "degraded_threshold": "AI_DEGRADED_THRESHOLD",
    "enable_failover": "AI_ENABLE_FAILOVER",
    "latency_ema_alpha": "AI_LATENCY_EMA_ALPHA",
    "health_check_interval_ms": "AI_HEALTH_CHECK_INTERVAL_MS",
}

_FILE_CACHE: Optional[Dict[str, Any]] = None
_DOTENV_LOADED = False
_CACHE_LOCK = threading.Lock()


def _load_dotenv_once() -> None:
    """Lightweight .env loader.

    Parses KEY=VALUE lines, ignoring comments and blank lines. Existing
    environment variables win unless their value looks like a placeholder.
    """
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    path = os.getenv("DOTENV_FILE", ".env")
    if not os.path.isfile(path):
        _DOTENV_LOADED = True
        return
    try:
        with open(path, "r", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                k, v = line.split("=", 1)
                k = k.strip()
                v = v.strip().strip('"').strip("'")
                if k and (k not in os.environ or is_placeholder(os.environ.get(k))):
                    os.environ[k] = v
    finally:
        _DOTENV_LOADED = True


def _expand(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


def _load_external_config() -> Dict[str, Any]:
    """Return the parsed ``PROVIDERS_CONFIG_FILE`` document (cached)."""
    global _FILE_CACHE
    with _CACHE_LOCK:
        if _FILE_CACHE is not None:
            return _FILE_CACHE
        path = os.getenv("PROVIDERS_CONFIG_FILE")
        data: Any = {}
        if path and Path(path).is_file():
            # YAML is a superset of JSON, so one parser covers both formats.
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        _FILE_CACHE = _expand(data) if isinstance(data, dict) else {}
        return _FILE_CACHE


def reset_config_cache() -> None:
    """Forget the cached config file and .env state (used by tests)."""
    global _FILE_CACHE, _DOTENV_LOADED
    with _CACHE_LOCK:
        _FILE_CACHE = None
        _DOTENV_LOADED = False


def _file_section(name: str) -> Dict[str, Any]:
    doc = _load_external_config()
    providers = doc.get("providers")
    section = providers.get(name) if isinstance(providers, dict) else doc.get(name)
    return dict(section) if isinstance(section, dict) else {}


def _env_overrides(provider: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    prefix = provider.upper()
    for field_name, suffixes in ENV_FIELD_MAP.items():
        for suffix in suffixes:
            val = os.getenv(f"{prefix}_{suffix}")
            if val:
                out[field_name] = val
                break
    if key := get_env_api_key(provider):
        out["api_key"] = key
    return out


def get_provider_config(provider: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return the merged configuration mapping for ``provider``.

    Merge order (later wins): defaults -> external config -> env vars -> overrides.
    """
    _load_dotenv_once()
    name = (provider or "").lower().strip()
    cfg: Dict[str, Any] = {}
    cfg |= DEFAULTS.get(name, {})
    cfg |= normalize_keys(_file_section(name))
    cfg |= _env_overrides(name)
    if overrides:
        cfg |= normalize_keys(overrides)
    return cfg


def get_typed_provider_config(provider: str, overrides: Optional[Dict[str, Any]] = None) -> ProviderConfig:
    return ProviderConfig.from_mapping(get_provider_config(provider, overrides))


def provider_order() -> List[str]:
    """Configured provider order: ``AI_PROVIDERS``, then the file's ``order``, then the default."""
    _load_dotenv_once()
    env_order = os.getenv("AI_PROVIDERS")
    if env_order:
        return _dedupe(p.strip().lower() for p in env_order.split(",") if p.strip())
    file_order = _load_external_config().get("order")
    if isinstance(file_order, list) and file_order:
        return _dedupe(str(p).strip().lower() for p in file_order if str(p).strip())
    return list(DEFAULT_PROVIDER_ORDER)


def load_provider_configs(names: Optional[Sequence[str]] = None) -> Dict[str, ProviderConfig]:
    """Return ``{name: ProviderConfig}`` for every provider that has an API key.

    The mapping preserves configuration order, which is also the failover order.
    """
    ordered = _dedupe(n.lower().strip() for n in names) if names else provider_order()
    configs: Dict[str, ProviderConfig] = {}
    for name in ordered:
        cfg = get_typed_provider_config(name)
        if cfg.api_key:
            configs[name] = cfg
    return configs


def load_manager_settings(overrides: Optional[Dict[str, Any]] = None) -> ManagerSettings:
    """Merge manager settings from the config file, environment and overrides."""
    _load_dotenv_once()
    merged: Dict[str, Any] = {}
    section = _load_external_config().get("manager")
    if isinstance(section, dict):
        merged |= section
    for field_name, env_name in _MANAGER_ENV_MAP.items():
        val = os.getenv(env_name)
        if val:
            merged[field_name] = val
    if overrides:
        merged |= {k: v for k, v in overrides.items() if v is not None}
    return ManagerSettings.from_mapping(merged)


def _dedupe(items) -> List[str]:
    seen: Dict[str, None] = {}
    for item in items:
        seen.setdefault(item, None)
    return list(seen)


__all__ = [
    "DEFAULTS",
    "ProviderConfig",
    "ManagerSettings",
    "get_provider_config",
    "get_typed_provider_config",
    "load_provider_configs",
    "load_manager_settings",
    "provider_order",
    "reset_config_cache",
]
