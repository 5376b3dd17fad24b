"""Retry executor with classified failures and capped exponential backoff.

A :class:`RetryPolicy` wraps one attempt-producing callable. Every failure is
normalized into an :class:`~hms_providers.base.errors.AIError` and handed to
the configured classifier: terminal errors are raised immediately, transient
ones are retried after a backoff delay until ``max_attempts`` is exhausted.
The error raised at the end is the last observed error object itself.

Delays follow ``min(base * multiplier**n * (1 + jitter * r), max_delay)``
with ``r`` drawn from ``[0, 1)``. Jitter only ever lengthens a delay and must
stay below ``multiplier - 1``, so successive delays strictly increase until
the cap is reached.

``time.sleep`` is resolved at call time so tests can monkeypatch it.
"""
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, TypeVar

from ..errors import AIError, is_transient, to_ai_error
from ..logging import LogContext, get_logger, normalized_log_event

T = TypeVar("T")

_logger = get_logger("retry")


class AttemptLogger(Protocol):  # pragma: no cover - structural protocol
    def __call__(
        self,
        *,
        attempt: int,
        max_attempts: int,
        delay: float | None,
        error: AIError | None,
    ) -> None: ...


@dataclass(frozen=True)
class BackoffSchedule:
    """Exponential backoff parameters (seconds)."""

    base_delay: float = 1.0
    max_delay: float = 10.0
    multiplier: float = 2.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.multiplier <= 1.0:
            raise ValueError("multiplier must be > 1")
        if not 0.0 <= self.jitter < self.multiplier - 1.0:
            raise ValueError("jitter must be in [0, multiplier - 1)")

    def raw_delay(self, retry_index: int) -> float:
        """Un-jittered delay before retry ``retry_index`` (0-based)."""
        return min(self.base_delay * (self.multiplier**retry_index), self.max_delay)

    def delay(self, retry_index: int, rng: Callable[[], float] = random.random) -> float:
        """Jittered, capped delay before retry ``retry_index`` (0-based)."""
        uncapped = self.base_delay * (self.multiplier**retry_index)
        return min(uncapped * (1.0 + self.jitter * rng()), self.max_delay)


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    backoff: BackoffSchedule = field(default_factory=BackoffSchedule)
    classifier: Callable[[BaseException], bool] = is_transient
    attempt_logger: Optional[AttemptLogger] = None


DEFAULT_RETRY_CONFIG = RetryConfig()


class RetryPolicy:
    """Reusable retry executor shared by blocking calls and stream setup."""

    def __init__(
        self,
        config: RetryConfig = DEFAULT_RETRY_CONFIG,
        *,
        sleep: Optional[Callable[[float], None]] = None,
        rng: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config
        self._sleep = sleep
        self._rng = rng or random.random

    @classmethod
    def single_attempt(cls) -> "RetryPolicy":
        return cls(RetryConfig(max_attempts=1))

    @property
    def max_attempts(self) -> int:
        return max(1, int(self.config.max_attempts))

    def delays(self) -> List[float]:
        """Jitter-free schedule for the configured number of retries."""
        return [self.config.backoff.raw_delay(i) for i in range(self.max_attempts - 1)]

    def is_retryable(self, error: BaseException) -> bool:
        return bool(self.config.classifier(error))

    def call(
        self,
        fn: Callable[[], T],
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        phase: str = "call",
    ) -> T:
        """Invoke ``fn`` until it succeeds, fails terminally or attempts run out.

        Raises:
            AIError: the terminal or last transient error, unwrapped.
        """
        attempts = self.max_attempts
        ctx = LogContext(provider=provider, model=model)
        for attempt in range(1, attempts + 1):
            try:
                result = fn()
            except Exception as exc:  # noqa: BLE001 - every failure is classified
                error = to_ai_error(exc, provider=provider, model=model)
                will_retry = attempt < attempts and self.is_retryable(error)
                delay = self.config.backoff.delay(attempt - 1, self._rng) if will_retry else None
                self._report(ctx, phase, attempt, attempts, delay, error)
                if not will_retry:
                    if error is exc:
                        raise
                    raise error from exc
                sleep = self._sleep if self._sleep is not None else time.sleep
                sleep(delay)
                continue
            if attempt > 1 or self.config.attempt_logger:
                self._report(ctx, phase, attempt, attempts, None, None)
            return result
        raise AssertionError("unreachable: retry loop always returns or raises")  # pragma: no cover

    def _report(
        self,
        ctx: LogContext,
        phase: str,
        attempt: int,
        max_attempts: int,
        delay: Optional[float],
        error: Optional[AIError],
    ) -> None:
        normalized_log_event(
            _logger,
            "retry.attempt",
            ctx,
            phase=phase,
            attempt=attempt,
            error_code=(error.code.value if error else None),
            level=(logging.WARNING if error is not None else logging.DEBUG),
            max_attempts=max_attempts,
            delay=delay,
            will_retry=delay is not None,
        )
        if self.config.attempt_logger:
            self.config.attempt_logger(
                attempt=attempt,
                max_attempts=max_attempts,
                delay=delay,
                error=error,
            )


__all__ = [
    "AttemptLogger",
    "BackoffSchedule",
    "RetryConfig",
    "RetryPolicy",
    "DEFAULT_RETRY_CONFIG",
]
