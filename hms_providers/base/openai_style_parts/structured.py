"""Translate OpenAI-style streaming payloads into generic chunk fields.

Pure and side-effect free. Accepts one decoded ``data:`` payload:

- ``choices[0].delta`` → :class:`MessageDelta` (content, role and the first
  ``tool_calls[].function`` fragment as ``function_call``)
- ``choices[0].finish_reason`` → finish reason
- ``usage`` (top level, or inside the choice as Moonshot sends it) → usage
- an ``error`` object → :class:`VendorError`
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..errors import VendorError, parse_vendor_error_body
from ..models import MessageDelta, TokenUsage
from ..streaming import ChunkTranslation


def _function_fragment(delta: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    tool_calls = delta.get("tool_calls")
    fn: Any = None
    if isinstance(tool_calls, list) and tool_calls:
        fn = tool_calls[0].get("function")
    elif isinstance(delta.get("function_call"), Mapping):
        fn = delta["function_call"]
    if not isinstance(fn, Mapping):
        return None
    fragment = {k: fn[k] for k in ("name", "arguments") if fn.get(k)}
    return fragment or None


def translate_openai_chunk(payload: Mapping[str, Any]) -> Optional[ChunkTranslation]:
    """Return the generic view of one payload, or ``None`` when it carries nothing."""
    if payload.get("error"):
        message, vendor_code = parse_vendor_error_body(dict(payload))
        raise VendorError(message=message or "vendor reported a stream error", vendor_code=vendor_code, raw=dict(payload))
    choices = payload.get("choices") or []
    choice: Mapping[str, Any] = choices[0] if choices else {}
    usage = TokenUsage.from_mapping(payload.get("usage") or choice.get("usage"))
    if not choice:
        return ChunkTranslation(usage=usage) if usage else None
    delta = choice.get("delta") or {}
    return ChunkTranslation(
        delta=MessageDelta(
            role=delta.get("role"),
            content=delta.get("content"),
            function_call=_function_fragment(delta),
        ),
        usage=usage,
        finish_reason=choice.get("finish_reason"),
    )


__all__ = ["translate_openai_chunk"]
