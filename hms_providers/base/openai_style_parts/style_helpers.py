"""Request helpers for OpenAI-compatible Chat Completions payloads.

Pure functions; no I/O. Shared by every adapter whose vendor speaks the
Chat Completions dialect (DeepSeek, Moonshot/Kimi, OpenAI).
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from ...config.defaults import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, DEFAULT_TOP_P
from ..capabilities import CapabilityDescriptor
from ..models import ChatMessage, ChatRequest, ToolSpec


def _arguments_text(arguments: Any) -> str:
    if arguments is None:
        return "{}"
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments, ensure_ascii=False)


def message_to_wire(message: ChatMessage) -> Dict[str, Any]:
    """Map one :class:`ChatMessage` onto the vendor message shape."""
    wire: Dict[str, Any] = {"role": message.role, "content": message.content}
    if message.name:
        wire["name"] = message.name
    if message.function_call:
        wire["function_call"] = {
            "name": message.function_call.get("name", ""),
            "arguments": _arguments_text(message.function_call.get("arguments")),
        }
    return wire


def tool_to_wire(tool: ToolSpec) -> Dict[str, Any]:
    return {"type": "function", "function": tool.to_dict()}


def _pick(value: Optional[Any], default: Any) -> Any:
    return default if value is None else value


def build_chat_params(
    request: ChatRequest,
    model: str,
    *,
    stream: bool,
    capabilities: CapabilityDescriptor,
) -> Dict[str, Any]:
    """Build the JSON body for ``POST chat/completions``.

    ``system_prompt`` becomes a leading ``system`` message. Tools are only
    sent when the adapter declares function calling; otherwise they are
    dropped silently.
    """
    messages: List[Dict[str, Any]] = [message_to_wire(m) for m in request.wire_messages()]
    params: Dict[str, Any] = {
        "model": model,
        "messages": messages,
        "temperature": _pick(request.temperature, DEFAULT_TEMPERATURE),
        "max_tokens": _pick(request.max_tokens, DEFAULT_MAX_TOKENS),
        "top_p": _pick(request.top_p, DEFAULT_TOP_P),
        "stream": stream,
    }
    if request.frequency_penalty is not None:
        params["frequency_penalty"] = request.frequency_penalty
    if request.presence_penalty is not None:
        params["presence_penalty"] = request.presence_penalty
    if request.tools and capabilities.function_calling:
        params["tools"] = [tool_to_wire(t) for t in request.tools]
    return params


__all__ = ["build_chat_params", "message_to_wire", "tool_to_wire"]
