"""GeminiProvider adapter for the Google Generative Language REST API.

Wire differences from the Chat Completions dialect:

- the API key travels as the ``key`` query parameter, not a header;
- ``models/{model}:generateContent`` and
  ``models/{model}:streamGenerateContent?alt=sse``;
- conversation turns are ``contents[{role, parts[{text}]}]`` with roles
  ``user`` / ``model``; system text goes to ``systemInstruction``;
- sampling lives under ``generationConfig`` and usage under
  ``usageMetadata``;
- the SSE stream has no terminator: EOF ends it.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from ..base.capabilities import CapabilityDescriptor
from ..base.errors import VendorError, parse_vendor_error_body
from ..base.models import ChatMessage, ChatRequest, ChatResponse, MessageDelta, TokenUsage
from ..base.provider_base import BaseHTTPProvider
from ..base.streaming import ChunkTranslation
from ..config.defaults import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_TOP_P,
    GEMINI_DEFAULT_BASE_URL,
    GEMINI_DEFAULT_MODEL,
)
from ..config.provider_config import ProviderConfig

DEFAULT_TOP_K = 40

_FINISH_REASONS = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
    "RECITATION": "content_filter",
    "BLOCKLIST": "content_filter",
    "PROHIBITED_CONTENT": "content_filter",
}

_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def map_finish_reason(reason: Optional[str]) -> Optional[str]:
    """Map Gemini's upper-case finish reasons onto the generic vocabulary."""
    if not reason or reason == "FINISH_REASON_UNSPECIFIED":
        return None
    return _FINISH_REASONS.get(reason, reason.lower())


def usage_from_metadata(meta: Optional[Mapping[str, Any]]) -> Optional[TokenUsage]:
    if not meta:
        return None
    prompt = int(meta.get("promptTokenCount") or 0)
    completion = int(meta.get("candidatesTokenCount") or 0)
    total = meta.get("totalTokenCount")
    return TokenUsage(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=int(total) if total is not None else prompt + completion,
    )


def _message_parts(msg: ChatMessage) -> List[Dict[str, Any]]:
    parts: List[Dict[str, Any]] = []
    if msg.content:
        parts.append({"text": msg.content})
    if msg.function_call:
        args = msg.function_call.get("arguments")
        if isinstance(args, str):
            try:
                args = json.loads(args) if args else {}
            except ValueError:
                args = {"value": args}
        parts.append({"functionCall": {"name": msg.function_call.get("name", ""), "args": args or {}}})
    return parts or [{"text": ""}]


def build_contents(request: ChatRequest) -> Dict[str, Any]:
    """Return ``{"contents": [...], "systemInstruction": {...}?}``.

    System turns (``system_prompt`` first, then any ``system`` messages) are
    joined into ``systemInstruction``. Consecutive turns with the same
    Gemini role are merged because the API rejects repeated roles.
    """
    system_texts: List[str] = [request.system_prompt] if request.system_prompt else []
    contents: List[Dict[str, Any]] = []
    for msg in request.messages:
        if msg.role == "system":
            system_texts.append(msg.content)
            continue
        role = "model" if msg.role == "assistant" else "user"
        parts = _message_parts(msg)
        if contents and contents[-1]["role"] == role:
            contents[-1]["parts"].extend(parts)
        else:
            contents.append({"role": role, "parts": parts})
    body: Dict[str, Any] = {"contents": contents}
    if system_texts:
        body["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_texts)}]}
    return body


def _candidate_message(candidate: Mapping[str, Any]) -> tuple:
    """Return ``(text, function_call)`` from a candidate's parts."""
    texts: List[str] = []
    function_call: Optional[Dict[str, Any]] = None
    for part in (candidate.get("content") or {}).get("parts") or ():
        if part.get("text"):
            texts.append(part["text"])
        fc = part.get("functionCall")
        if fc and function_call is None:
            function_call = {"name": fc.get("name", ""), "arguments": json.dumps(fc.get("args") or {}, ensure_ascii=False)}
    return "".join(texts), function_call


class GeminiProvider(BaseHTTPProvider):
    """Google Gemini models over plain HTTPS."""

    name = "gemini"
    default_base_url = GEMINI_DEFAULT_BASE_URL
    default_model_name = GEMINI_DEFAULT_MODEL
    default_timeout_ms = DEFAULT_TIMEOUT_MS
    stream_sentinel = None
    capabilities = CapabilityDescriptor(
        chat=True,
        stream=True,
        vision=True,
        embedding=False,
        function_calling=True,
        max_context_length=32768,
        supported_languages=frozenset({"zh", "en", "ja", "ko", "es", "fr", "de", "ru"}),
        models=("gemini-pro", "gemini-pro-vision", "gemini-ultra"),
    )

    def auth_headers(self, config: ProviderConfig) -> Dict[str, str]:
        return {}

    def auth_params(self, config: ProviderConfig) -> Optional[Dict[str, str]]:
        return {"key": config.api_key}

    def chat_path(self, model: str, *, stream: bool) -> str:
        action = "streamGenerateContent" if stream else "generateContent"
        return f"models/{model}:{action}"

    def stream_params(self) -> Optional[Dict[str, str]]:
        return {"alt": "sse"}

    def build_payload(self, request: ChatRequest, model: str, *, stream: bool) -> Dict[str, Any]:
        body = build_contents(request)
        config: Dict[str, Any] = {
            "temperature": DEFAULT_TEMPERATURE if request.temperature is None else request.temperature,
            "maxOutputTokens": DEFAULT_MAX_TOKENS if request.max_tokens is None else request.max_tokens,
            "topP": DEFAULT_TOP_P if request.top_p is None else request.top_p,
            "topK": DEFAULT_TOP_K,
        }
        if request.frequency_penalty is not None:
            config["frequencyPenalty"] = request.frequency_penalty
        if request.presence_penalty is not None:
            config["presencePenalty"] = request.presence_penalty
        body["generationConfig"] = config
        body["safetySettings"] = [{"category": c, "threshold": "BLOCK_NONE"} for c in _SAFETY_CATEGORIES]
        if request.tools and self.capabilities.function_calling:
            body["tools"] = [{"functionDeclarations": [t.to_dict() for t in request.tools]}]
        return body

    def parse_response(self, data: Dict[str, Any], model: str, response_id: str) -> ChatResponse:
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            feedback = data.get("promptFeedback") or {}
            reason = feedback.get("blockReason")
            raise VendorError(
                message=f"prompt blocked: {reason}" if reason else "response contained no candidates",
                provider=self.name,
                model=model,
                vendor_code=reason,
                raw=data,
            )
        candidate = candidates[0]
        text, function_call = _candidate_message(candidate)
        return ChatResponse(
            id=response_id,
            provider=self.name,
            model=model,
            message=ChatMessage(role="assistant", content=text, function_call=function_call),
            usage=usage_from_metadata(data.get("usageMetadata")),
            finish_reason=map_finish_reason(candidate.get("finishReason")),
        )

    def translate_chunk(self, payload: Dict[str, Any]) -> Optional[ChunkTranslation]:
        if payload.get("error"):
            message, vendor_code = parse_vendor_error_body(payload)
            raise VendorError(message=message or "vendor reported a stream error", vendor_code=vendor_code, raw=payload)
        usage = usage_from_metadata(payload.get("usageMetadata"))
        candidates = payload.get("candidates") or []
        if not candidates:
            return ChunkTranslation(usage=usage) if usage else None
        candidate = candidates[0]
        text, function_call = _candidate_message(candidate)
        return ChunkTranslation(
            delta=MessageDelta(
                role="assistant" if (text or function_call) else None,
                content=text or None,
                function_call=function_call,
            ),
            usage=usage,
            finish_reason=map_finish_reason(candidate.get("finishReason")),
        )


__all__ = ["GeminiProvider", "build_contents", "map_finish_reason", "usage_from_metadata"]
