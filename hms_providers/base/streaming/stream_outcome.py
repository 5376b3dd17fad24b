"""Summary handed to ``on_complete`` callbacks when a stream ends."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..errors import AIError
from ..models import TokenUsage


@dataclass(frozen=True)
class StreamOutcome:
    """How a stream ended.

    Attributes:
        success: True for a clean finish, or an abandonment after output.
        emitted: Non-terminal chunks delivered before the end.
        usage: Last vendor-reported usage, if any.
        error: Error carried by the terminal chunk, if any.
        latency_ms: Wall time from open to end.
        abandoned: The consumer stopped before the terminal chunk.
    """

    success: bool
    emitted: int
    usage: Optional[TokenUsage]
    error: Optional[AIError]
    latency_ms: float
    abandoned: bool = False

    @property
    def tokens(self) -> int:
        return self.usage.total_tokens if self.usage else 0


__all__ = ["StreamOutcome"]
