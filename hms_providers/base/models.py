"""Provider-agnostic request/response models.

Re-exports the single-class modules under ``hms_providers.base.models_parts``
to keep one stable import path for adapters and callers.
"""

from __future__ import annotations

from .models_parts import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    MessageDelta,
    StreamResponse,
    TokenUsage,
    ToolSpec,
    VALID_ROLES,
    new_response_id,
)

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "MessageDelta",
    "StreamResponse",
    "TokenUsage",
    "ToolSpec",
    "VALID_ROLES",
    "new_response_id",
]
