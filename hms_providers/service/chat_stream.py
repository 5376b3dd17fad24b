from __future__ import annotations

"""
Server-sent events rendering for streaming chat.

Purpose
-------
``POST /api/v1/ai/chat`` with ``"stream": true`` answers with
``text/event-stream``. Each normalized ``StreamResponse`` becomes one
``data: <json>\\n\\n`` event; the body always ends with ``data: [DONE]\\n\\n``.

Failure semantics
-----------------
Errors detected before the first byte (validation, unknown provider,
manager not initialized) are raised by ``manager.stream_chat`` and turned
into a regular HTTP error by the caller. Anything later arrives as the
stream's terminal chunk with a non-null ``error`` and is forwarded as-is,
followed by the terminator, so clients never see a truncated body.

The provider stream is closed when the response generator ends for any
reason, including a client disconnect.
"""

from typing import Iterator

from fastapi.responses import StreamingResponse

from hms_providers.base.errors import AIError
from hms_providers.base.streaming import ChatStream, DONE_SENTINEL, format_sse
from hms_providers.manager import ProviderManager
from hms_providers.service.app_parts.app_core import ChatBody, _http_error
from hms_providers.service.chat_request_build import build_chat_request

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def iter_sse_events(stream: ChatStream) -> Iterator[str]:
    """Yield one SSE frame per chunk, then the terminator."""
    try:
        for chunk in stream:
            yield format_sse(chunk.to_dict())
        yield format_sse(DONE_SENTINEL)
    finally:
        stream.close()


def open_chat_stream(body: ChatBody, manager: ProviderManager) -> StreamingResponse:
    """Start a streaming chat and wrap it in a ``StreamingResponse``."""
    try:
        request = build_chat_request(body)
        stream = manager.stream_chat(request, provider=body.provider)
    except AIError as err:
        raise _http_error(err, "Chat failed") from err
    return StreamingResponse(iter_sse_events(stream), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)


__all__ = ["iter_sse_events", "open_chat_stream", "SSE_MEDIA_TYPE"]
