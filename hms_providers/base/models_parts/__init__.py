"""One-class-per-file DTO parts. Import from ``hms_providers.base.models``."""

from .message import ChatMessage, VALID_ROLES
from .tool_spec import ToolSpec
from .token_usage import TokenUsage
from .chat_request import ChatRequest
from .chat_response import ChatResponse, new_response_id
from .message_delta import MessageDelta
from .stream_response import StreamResponse

__all__ = [
    "ChatMessage",
    "VALID_ROLES",
    "ToolSpec",
    "TokenUsage",
    "ChatRequest",
    "ChatResponse",
    "new_response_id",
    "MessageDelta",
    "StreamResponse",
]
