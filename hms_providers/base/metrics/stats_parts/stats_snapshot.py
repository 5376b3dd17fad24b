"""Provider usage statistics snapshot.

Immutable point-in-time copy of :class:`ProviderStats`, safe to serialize.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ProviderStatsSnapshot:
    provider: str
    total_requests: int
    success_count: int
    failure_count: int
    total_tokens: int
    total_cost: float
    average_latency_ms: float
    min_latency_ms: Optional[float]
    max_latency_ms: Optional[float]
    last_request_at: Optional[float]

    @property
    def success_rate(self) -> float:
        """Fraction of successful requests (0.0 before any request)."""
        if self.total_requests == 0:
            return 0.0
        return self.success_count / self.total_requests

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["success_rate"] = self.success_rate
        return data


__all__ = ["ProviderStatsSnapshot"]
