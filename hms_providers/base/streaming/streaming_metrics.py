"""Per-stream metrics collected by the normalizer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..models import TokenUsage


@dataclass
class StreamMetrics:
    """Collected streaming metrics for a single call.

    ``emitted`` counts non-terminal chunks handed to the consumer.
    """

    emitted: int = 0
    time_to_first_token_ms: Optional[float] = None
    total_duration_ms: Optional[float] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @property
    def tokens(self) -> Optional[Dict[str, Any]]:
        if self.total_tokens is None:
            return None
        return {"prompt": self.prompt_tokens, "completion": self.completion_tokens, "total": self.total_tokens}


def apply_token_usage(metrics: StreamMetrics, usage: Optional[TokenUsage]) -> None:
    """Copy vendor-reported usage into ``metrics`` (no-op for ``None``)."""
    if usage is None:
        return
    metrics.prompt_tokens = usage.prompt_tokens
    metrics.completion_tokens = usage.completion_tokens
    metrics.total_tokens = usage.total_tokens


__all__ = ["StreamMetrics", "apply_token_usage"]
