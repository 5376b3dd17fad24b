"""Thread-safe usage counters for one provider.

``record_request`` is called from many concurrent request flows. All updates
happen under one lock so no increment is lost, and the method never raises:
odd inputs (negative, ``None``, NaN, non-numeric) are coerced to zero.

Cost is the adapter's USD estimate for the call, summed as reported.

Latency is tracked as an exponential moving average: the first sample seeds
the average, later samples move it by ``ema_alpha``.
"""

from __future__ import annotations

import math
import time
from threading import RLock
from typing import Any, Callable, Optional

from .stats_snapshot import ProviderStatsSnapshot

DEFAULT_EMA_ALPHA = 0.1


def _coerce_non_negative(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


class ProviderStats:
    """Usage counters with EMA latency."""

    __slots__ = (
        "_provider",
        "_lock",
        "_alpha",
        "_clock",
        "_total",
        "_success",
        "_failure",
        "_tokens",
        "_cost",
        "_avg_latency",
        "_min_latency",
        "_max_latency",
        "_last_request_at",
    )

    def __init__(
        self,
        provider: str,
        *,
        ema_alpha: float = DEFAULT_EMA_ALPHA,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not 0.0 < ema_alpha <= 1.0:
            raise ValueError("ema_alpha must be in (0, 1]")
        self._provider = provider
        self._lock = RLock()
        self._alpha = ema_alpha
        self._clock = clock
        self._total = 0
        self._success = 0
        self._failure = 0
        self._tokens = 0
        self._cost = 0.0
        self._avg_latency = 0.0
        self._min_latency: Optional[float] = None
        self._max_latency: Optional[float] = None
        self._last_request_at: Optional[float] = None

    @staticmethod
    def monotonic_ms() -> float:
        """Current monotonic time in milliseconds for latency measurement."""
        return time.monotonic() * 1000.0

    def record_request(self, success: bool, tokens_used: Any = 0, latency_ms: Any = 0.0, cost: Any = 0.0) -> None:
        """Record one finished call. Never raises."""
        tokens = int(_coerce_non_negative(tokens_used))
        spent = _coerce_non_negative(cost)
        latency = _coerce_non_negative(latency_ms)
        ok = bool(success)
        with self._lock:
            self._total += 1
            if ok:
                self._success += 1
            else:
                self._failure += 1
            self._tokens += tokens
            self._cost += spent
            if self._total == 1:
                self._avg_latency = latency
            else:
                self._avg_latency = self._avg_latency * (1.0 - self._alpha) + latency * self._alpha
            self._min_latency = latency if self._min_latency is None else min(self._min_latency, latency)
            self._max_latency = latency if self._max_latency is None else max(self._max_latency, latency)
            self._last_request_at = self._clock()

    @property
    def total_requests(self) -> int:
        with self._lock:
            return self._total

    @property
    def average_latency_ms(self) -> float:
        with self._lock:
            return self._avg_latency

    def snapshot(self) -> ProviderStatsSnapshot:
        with self._lock:
            return ProviderStatsSnapshot(
                provider=self._provider,
                total_requests=self._total,
                success_count=self._success,
                failure_count=self._failure,
                total_tokens=self._tokens,
                total_cost=self._cost,
                average_latency_ms=self._avg_latency,
                min_latency_ms=self._min_latency,
                max_latency_ms=self._max_latency,
                last_request_at=self._last_request_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._total = self._success = self._failure = self._tokens = 0
            self._cost = 0.0
            self._avg_latency = 0.0
            self._min_latency = self._max_latency = None
            self._last_request_at = None


__all__ = ["ProviderStats", "DEFAULT_EMA_ALPHA"]
