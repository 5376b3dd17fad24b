"""Fold a chunk stream back into a single ``ChatResponse``."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from ..errors import AIError
from ..models import ChatMessage, ChatResponse, StreamResponse, TokenUsage


def accumulate_stream(chunks: Iterable[StreamResponse]) -> ChatResponse:
    """Concatenate content deltas into one assistant message.

    Raises the terminal chunk's :class:`AIError` when the stream failed, and
    a plain ``AIError`` when the stream ended without a terminal chunk.
    """
    parts: List[str] = []
    function_call: Optional[Dict[str, Any]] = None
    usage: Optional[TokenUsage] = None
    terminal: Optional[StreamResponse] = None
    first: Optional[StreamResponse] = None
    for chunk in chunks:
        first = first or chunk
        if chunk.done:
            terminal = chunk
            break
        if chunk.delta.content:
            parts.append(chunk.delta.content)
        if chunk.delta.function_call:
            function_call = _merge_function_call(function_call, chunk.delta.function_call)
        if chunk.usage is not None:
            usage = chunk.usage
    if terminal is None:
        raise AIError(message="stream ended without a terminal chunk", provider=first.provider if first else None)
    if terminal.error is not None:
        raise terminal.error
    return ChatResponse(
        id=terminal.id,
        provider=terminal.provider,
        model=terminal.model,
        message=ChatMessage(role="assistant", content="".join(parts), function_call=function_call),
        usage=terminal.usage or usage,
        finish_reason=terminal.finish_reason,
    )


def _merge_function_call(current: Optional[Dict[str, Any]], delta: Dict[str, Any]) -> Dict[str, Any]:
    # name arrives once, arguments arrive as string fragments
    merged = dict(current or {})
    if delta.get("name"):
        merged["name"] = delta["name"]
    if delta.get("arguments"):
        merged["arguments"] = merged.get("arguments", "") + str(delta["arguments"])
    return merged


__all__ = ["accumulate_stream"]
