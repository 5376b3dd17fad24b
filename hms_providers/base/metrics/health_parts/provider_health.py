"""Thread-safe health state machine for one provider.

Failures are counted per call (after the retry executor gave up), not per
attempt. Only transient failures move a provider towards ``DEGRADED``;
vendor business errors say nothing about reachability and leave the state
alone. Auth failures are terminal and mark the provider ``UNREACHABLE``.
"""

from __future__ import annotations

import time
from threading import RLock
from typing import Callable, Optional

from ...errors import AIError, ErrorCode, to_ai_error
from .health_snapshot import HealthSnapshot
from .health_state import HealthState

_AUTH_CODES = (ErrorCode.AUTH, ErrorCode.MISSING_API_KEY)


class ProviderHealth:
    """Per-provider health tracker."""

    __slots__ = (
        "_provider",
        "_lock",
        "_state",
        "_consecutive_failures",
        "_degraded_threshold",
        "_last_checked_at",
        "_last_error",
        "_clock",
    )

    def __init__(
        self,
        provider: str,
        *,
        degraded_threshold: int = 3,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._lock = RLock()
        self._state = HealthState.UNINITIALIZED
        self._consecutive_failures = 0
        self._degraded_threshold = max(1, int(degraded_threshold))
        self._last_checked_at: Optional[float] = None
        self._last_error: Optional[AIError] = None
        self._clock = clock

    # ----------------------------------------------------------- readers
    @property
    def state(self) -> HealthState:
        with self._lock:
            return self._state

    @property
    def healthy(self) -> bool:
        return self.state is HealthState.HEALTHY

    @property
    def usable(self) -> bool:
        """HEALTHY or DEGRADED: calls may still be dispatched."""
        return self.state in (HealthState.HEALTHY, HealthState.DEGRADED)

    @property
    def last_error(self) -> Optional[AIError]:
        with self._lock:
            return self._last_error

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def snapshot(self) -> HealthSnapshot:
        with self._lock:
            return HealthSnapshot(
                provider=self._provider,
                state=self._state,
                consecutive_failures=self._consecutive_failures,
                last_checked_at=self._last_checked_at,
                last_error=self._last_error.to_dict() if self._last_error else None,
            )

    # ----------------------------------------------------------- writers
    def mark_healthy(self) -> HealthState:
        """Initialization succeeded."""
        with self._lock:
            self._state = HealthState.HEALTHY
            self._consecutive_failures = 0
            self._last_error = None
            self._last_checked_at = self._clock()
            return self._state

    def mark_unreachable(self, error: BaseException) -> HealthState:
        """Initialization failed or credentials were rejected."""
        with self._lock:
            self._state = HealthState.UNREACHABLE
            self._last_error = to_ai_error(error, provider=self._provider)
            self._last_checked_at = self._clock()
            return self._state

    def record_success(self) -> HealthState:
        with self._lock:
            self._last_checked_at = self._clock()
            if self._state in (HealthState.HEALTHY, HealthState.DEGRADED):
                self._state = HealthState.HEALTHY
                self._consecutive_failures = 0
            return self._state

    def record_failure(self, error: BaseException) -> HealthState:
        with self._lock:
            err = to_ai_error(error, provider=self._provider)
            self._last_checked_at = self._clock()
            self._last_error = err
            if self._state not in (HealthState.HEALTHY, HealthState.DEGRADED):
                return self._state
            if err.code in _AUTH_CODES:
                self._state = HealthState.UNREACHABLE
            elif err.transient:
                self._consecutive_failures += 1
                if self._consecutive_failures >= self._degraded_threshold:
                    self._state = HealthState.DEGRADED
            return self._state


__all__ = ["ProviderHealth"]
