"""Typed per-provider configuration consumed by adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..base.log_support import redact_secret
from .defaults import DEFAULT_TIMEOUT_MS

# camelCase / legacy spellings accepted by ``from_mapping``
_ALIASES: Dict[str, str] = {
    "apiKey": "api_key",
    "apiBase": "api_base",
    "baseUrl": "api_base",
    "base_url": "api_base",
    "timeoutMs": "timeout_ms",
    "timeout": "timeout_ms",
    "defaultModel": "default_model",
    "model": "default_model",
    "maxRetries": "max_retries",
}


def normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase/legacy keys onto field names, dropping ``None`` values."""
    return {_ALIASES.get(key, key): value for key, value in data.items() if value is not None}


@dataclass
class ProviderConfig:
    """Credentials and endpoint settings for one provider.

    Attributes:
        api_key: Vendor credential (required for initialization).
        api_base: Base URL override; adapters fall back to their default.
        timeout_ms: Per-attempt timeout in milliseconds.
        default_model: Model used when a request does not name one.
        headers: Extra HTTP headers sent on every call.
        organization: OpenAI organization id (ignored by other vendors).
        max_retries: Per-provider override of the retry attempt count.
    """

    api_key: str = ""
    api_base: Optional[str] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_model: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    organization: Optional[str] = None
    max_retries: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProviderConfig":
        """Build a config from snake_case or camelCase keys; unknown keys are ignored."""
        normalized = normalize_keys(data)
        cfg = cls()
        if "api_key" in normalized:
            key = str(normalized["api_key"]).strip()
            # unresolved ${VAR} from the config file means no key
            cfg.api_key = "" if key.startswith("${") else key
        if normalized.get("api_base"):
            cfg.api_base = str(normalized["api_base"]).rstrip("/")
        if "timeout_ms" in normalized:
            cfg.timeout_ms = _positive_int(normalized["timeout_ms"], DEFAULT_TIMEOUT_MS)
        if normalized.get("default_model"):
            cfg.default_model = str(normalized["default_model"])
        if isinstance(normalized.get("headers"), Mapping):
            cfg.headers = {str(k): str(v) for k, v in normalized["headers"].items()}
        if normalized.get("organization"):
            cfg.organization = str(normalized["organization"])
        if "max_retries" in normalized:
            cfg.max_retries = _positive_int(normalized["max_retries"], None)
        return cfg

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def to_dict(self, *, redact: bool = True) -> Dict[str, Any]:
        return {
            "api_key": redact_secret(self.api_key) if redact else self.api_key,
            "api_base": self.api_base,
            "timeout_ms": self.timeout_ms,
            "default_model": self.default_model,
            "headers": dict(self.headers),
            "organization": self.organization,
            "max_retries": self.max_retries,
        }


def _positive_int(value: Any, default: Optional[int]) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


__all__ = ["ProviderConfig", "normalize_keys"]
