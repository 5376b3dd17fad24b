"""Manager-level settings (default provider, retry and health tuning)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from ..base.logging import get_logger, log_event
from ..base.resilience.retry import BackoffSchedule, RetryConfig, RetryPolicy
from .defaults import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_DEGRADED_THRESHOLD,
    DEFAULT_HEALTH_CHECK_INTERVAL_MS,
    DEFAULT_JITTER,
    DEFAULT_LATENCY_EMA_ALPHA,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_MS,
)

_BACKOFF_FIELDS = ("base_delay_ms", "max_delay_ms", "backoff_multiplier", "jitter")

# name -> (caster, accepts)
_NUMERIC_FIELDS: Dict[str, Any] = {
    "max_attempts": (int, lambda v: v >= 1),
    "base_delay_ms": (int, lambda v: v >= 0),
    "max_delay_ms": (int, lambda v: v >= 0),
    "backoff_multiplier": (float, lambda v: v > 1.0),
    "jitter": (float, lambda v: v >= 0.0),
    "degraded_threshold": (int, lambda v: v >= 1),
    "latency_ema_alpha": (float, lambda v: 0.0 < v <= 1.0),
    "health_check_interval_ms": (int, lambda v: v >= 0),
}

_logger = get_logger("config")


@dataclass(frozen=True)
class ManagerSettings:
    """Tuning knobs for :class:`~hms_providers.manager.ProviderManager`.

    ``health_check_interval_ms`` paces the background probe loop; ``0``
    turns it off.
    """

    default_provider: Optional[str] = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    jitter: float = DEFAULT_JITTER
    degraded_threshold: int = DEFAULT_DEGRADED_THRESHOLD
    enable_failover: bool = True
    latency_ema_alpha: float = DEFAULT_LATENCY_EMA_ALPHA
    health_check_interval_ms: int = DEFAULT_HEALTH_CHECK_INTERVAL_MS

    def backoff(self) -> BackoffSchedule:
        return BackoffSchedule(
            base_delay=self.base_delay_ms / 1000.0,
            max_delay=self.max_delay_ms / 1000.0,
            multiplier=self.backoff_multiplier,
            jitter=self.jitter,
        )

    def retry_policy(self, max_attempts: Optional[int] = None) -> RetryPolicy:
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        return RetryPolicy(RetryConfig(max_attempts=attempts, backoff=self.backoff()))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ManagerSettings":
        """Build settings from a mapping; invalid values keep the defaults.

        A value is invalid when it cannot be parsed, is out of range, or
        (for the backoff fields) does not form a valid
        :class:`BackoffSchedule` together with the others. In the last case
        every backoff field falls back to its default. Each rejection is
        logged as a ``config.manager.invalid`` warning.
        """
        base = cls()
        values: Dict[str, Any] = {}
        for name, (caster, accepts) in _NUMERIC_FIELDS.items():
            raw = data.get(name)
            if raw is None:
                continue
            parsed = _parse(caster, raw)
            if parsed is None or not accepts(parsed):
                _warn_invalid(name, raw)
                continue
            values[name] = parsed
        if data.get("default_provider"):
            values["default_provider"] = str(data["default_provider"]).lower().strip()
        if data.get("enable_failover") is not None:
            values["enable_failover"] = _as_bool(data["enable_failover"], base.enable_failover)
        settings = cls(**{**base.__dict__, **values})
        try:
            settings.backoff()
        except ValueError as exc:
            rejected = {name: values[name] for name in _BACKOFF_FIELDS if name in values}
            log_event(
                _logger,
                "config.manager.invalid",
                None,
                level=logging.WARNING,
                fields=rejected,
                message=f"backoff settings rejected, using defaults: {exc}",
            )
            for name in _BACKOFF_FIELDS:
                values.pop(name, None)
            settings = cls(**{**base.__dict__, **values})
        return settings


def _parse(caster: Callable[[Any], Any], raw: Any) -> Any:
    try:
        return caster(raw)
    except (TypeError, ValueError):
        return None


def _warn_invalid(name: str, raw: Any) -> None:
    log_event(
        _logger,
        "config.manager.invalid",
        None,
        level=logging.WARNING,
        fields={name: raw},
        message=f"ignoring invalid value for {name}",
    )


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    return default


__all__ = ["ManagerSettings"]
