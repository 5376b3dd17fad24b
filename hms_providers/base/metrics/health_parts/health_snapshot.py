"""Immutable health snapshot."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .health_state import HealthState


@dataclass(frozen=True)
class HealthSnapshot:
    provider: str
    state: HealthState
    consecutive_failures: int
    last_checked_at: Optional[float]
    last_error: Optional[Dict[str, Any]]

    @property
    def healthy(self) -> bool:
        return self.state is HealthState.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "state": self.state.value,
            "healthy": self.healthy,
            "consecutive_failures": self.consecutive_failures,
            "last_checked_at": self.last_checked_at,
            "last_error": self.last_error,
        }


__all__ = ["HealthSnapshot"]
