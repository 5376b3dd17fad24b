"""
ChatResponse DTO plus the response id helper shared by adapters.
"""
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .message import ChatMessage
from .token_usage import TokenUsage


def new_response_id(provider: str) -> str:
    """Return a unique id of the form ``<provider>-<epoch ms>-<random>``."""
    return f"{provider}-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


@dataclass
class ChatResponse:
    """Normalized result of one non-streaming chat call."""

    id: str
    provider: str
    model: str
    message: ChatMessage
    usage: Optional[TokenUsage] = None
    finish_reason: Optional[str] = None
    created: int = field(default_factory=lambda: int(time.time()))

    @property
    def text(self) -> str:
        return self.message.content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "model": self.model,
            "message": self.message.to_dict(),
            "usage": self.usage.to_dict() if self.usage else None,
            "finish_reason": self.finish_reason,
            "created": self.created,
        }


__all__ = ["ChatResponse", "new_response_id"]
