"""hms_providers package

AI provider abstraction and resilience layer for the hospital platform.

Purpose:
    Give clinical services one stable way to talk to large-language-model
    vendors (DeepSeek, Gemini, Kimi, OpenAI) with normalized requests,
    responses and stream chunks, classified errors, retries, health tracking
    and automatic failover.

Public API (re-exported):
    - Version: ``__version__``
    - Models: :class:`ChatRequest`, :class:`ChatResponse`, :class:`ChatMessage`,
      :class:`StreamResponse`, :class:`TokenUsage`
    - Errors: :class:`AIError`, :class:`ErrorCode`
    - Providers: :class:`AIProvider`, :class:`ProviderFactory`
    - Orchestration: :class:`ProviderManager`, :class:`ProvidersContainer`
    - Streaming: :class:`ChatStream`, :func:`accumulate_stream`
"""

from .base.errors import AIError, ErrorCode
from .base.factory import ProviderFactory, create_provider
from .base.interfaces import AIProvider
from .base.models import ChatMessage, ChatRequest, ChatResponse, StreamResponse, TokenUsage
from .base.streaming import ChatStream, accumulate_stream
from .di import ProvidersContainer, build_container
from .manager import ProviderManager

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AIError",
    "ErrorCode",
    "AIProvider",
    "ProviderFactory",
    "create_provider",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "StreamResponse",
    "TokenUsage",
    "ChatStream",
    "accumulate_stream",
    "ProviderManager",
    "ProvidersContainer",
    "build_container",
]
