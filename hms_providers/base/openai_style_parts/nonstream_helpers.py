"""Response helpers for non-streaming Chat Completions calls."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..errors import VendorError
from ..models import ChatMessage, ChatResponse, TokenUsage


def extract_function_call(message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Return ``{"name", "arguments"}`` from ``tool_calls`` or legacy ``function_call``.

    Only the first tool call is surfaced.
    """
    tool_calls = message.get("tool_calls")
    if isinstance(tool_calls, list) and tool_calls:
        fn = tool_calls[0].get("function") or {}
        return {"name": fn.get("name", ""), "arguments": fn.get("arguments", "")}
    legacy = message.get("function_call")
    if isinstance(legacy, Mapping):
        return {"name": legacy.get("name", ""), "arguments": legacy.get("arguments", "")}
    return None


def parse_chat_completion(
    data: Mapping[str, Any],
    *,
    provider: str,
    model: str,
    response_id: str,
) -> ChatResponse:
    """Map a Chat Completions body to :class:`ChatResponse` (first choice wins)."""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise VendorError(message="response contained no choices", provider=provider, model=model, raw=dict(data))
    first = choices[0] or {}
    message = first.get("message") or {}
    return ChatResponse(
        id=response_id,
        provider=provider,
        model=data.get("model") or model,
        message=ChatMessage(
            role=message.get("role") or "assistant",
            content=message.get("content") or "",
            function_call=extract_function_call(message),
        ),
        usage=TokenUsage.from_mapping(data.get("usage")),
        finish_reason=first.get("finish_reason"),
    )


__all__ = ["extract_function_call", "parse_chat_completion"]
