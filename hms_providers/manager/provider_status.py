"""ProviderStatus: point-in-time view of one registered provider."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..base.metrics import HealthState


@dataclass(frozen=True)
class ProviderStatus:
    name: str
    healthy: bool
    state: HealthState
    current: bool = False
    default_model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "state": self.state.value,
            "current": self.current,
            "default_model": self.default_model,
        }


__all__ = ["ProviderStatus"]
