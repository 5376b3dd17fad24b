"""Shared helpers for adapter tests: a scriptable vendor behind ``httpx.MockTransport``."""

from __future__ import annotations

import json
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple, Union

import httpx

from hms_providers.base.models import ChatMessage, ChatRequest
from hms_providers.config.provider_config import ProviderConfig

Reply = Tuple[int, Dict[str, Any]]


def sse_body(payloads: Iterable[Union[Dict[str, Any], str]], *, done: bool = True) -> str:
    """Render payloads as an SSE body (``[DONE]`` appended unless ``done`` is False)."""
    lines = []
    for payload in payloads:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {text}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines)


def json_reply(body: Any, status: int = 200) -> Reply:
    return status, {"json": body}


def sse_reply(text: str, status: int = 200) -> Reply:
    return status, {"text": text, "headers": {"content-type": "text/event-stream"}}


class VendorStub:
    """Callable handler standing in for a vendor API.

    ``GET`` requests are model-listing probes answered with ``probe``.
    ``POST`` requests pop the next queued reply, falling back to ``default``.
    Every request is recorded in ``requests``.
    """

    def __init__(self, *, probe: Optional[Reply] = None, default: Optional[Reply] = None) -> None:
        self.probe = probe or json_reply({"data": []})
        self.default = default or json_reply({"error": {"message": "no reply scripted"}}, status=500)
        self.replies: Deque[Union[Reply, Exception]] = deque()
        self.requests: List[httpx.Request] = []

    def queue(self, *replies: Union[Reply, Exception]) -> "VendorStub":
        self.replies.extend(replies)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            status, kwargs = self.probe
            return httpx.Response(status, **kwargs)
        reply = self.replies.popleft() if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        status, kwargs = reply
        return httpx.Response(status, **kwargs)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def posts(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def last_payload(self) -> Dict[str, Any]:
        return json.loads(self.posts[-1].content)


def user_request(text: str = "hello", **kwargs: Any) -> ChatRequest:
    return ChatRequest(messages=[ChatMessage(role="user", content=text)], **kwargs)


def keyed_config(key: str = "sk-test-0123456789", **kwargs: Any) -> ProviderConfig:
    return ProviderConfig(api_key=key, **kwargs)


def openai_completion(text: str, *, finish_reason: str = "stop", usage: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    return {
        "id": "chatcmpl-vendor",
        "model": "vendor-model",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}, "finish_reason": finish_reason}],
        "usage": usage or {"prompt_tokens": 5, "completion_tokens": 7, "total_tokens": 12},
    }


def openai_delta(content: Optional[str] = None, *, finish_reason: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    delta: Dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    payload: Dict[str, Any] = {"choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}]}
    payload.update(extra)
    return payload
