"""
StreamResponse DTO: one normalized chunk of a streaming chat call.

Invariants maintained by the stream normalizer: all chunks of a call share
the same ``id``; exactly one chunk has ``done=True`` and it is the last one;
a chunk carrying ``error`` is always that terminal chunk.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import AIError
from .message_delta import MessageDelta
from .token_usage import TokenUsage


@dataclass
class StreamResponse:
    id: str
    provider: str
    model: str
    delta: MessageDelta = field(default_factory=MessageDelta)
    usage: Optional[TokenUsage] = None
    finish_reason: Optional[str] = None
    error: Optional[AIError] = None
    done: bool = False

    @property
    def content(self) -> str:
        return self.delta.content or ""

    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "model": self.model,
            "delta": self.delta.to_dict(),
            "usage": self.usage.to_dict() if self.usage else None,
            "finish_reason": self.finish_reason,
            "error": self.error.to_dict() if self.error else None,
            "done": self.done,
        }


__all__ = ["StreamResponse"]
