"""BaseOpenAIStyleProvider: shared adapter for Chat Completions vendors.

Purpose:
- DeepSeek, Moonshot (Kimi) and OpenAI expose the same ``chat/completions``
  wire format. Concrete adapters only declare their name, defaults and
  capability descriptor; translation lives in the helper modules.

External dependencies:
- ``httpx`` via :class:`~hms_providers.base.provider_base.BaseHTTPProvider`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..constants import CHAT_COMPLETIONS_PATH
from ..models import ChatRequest, ChatResponse
from ..provider_base import BaseHTTPProvider
from ..streaming import ChunkTranslation
from .nonstream_helpers import parse_chat_completion
from .structured import translate_openai_chunk
from .style_helpers import build_chat_params


class BaseOpenAIStyleProvider(BaseHTTPProvider):
    """Reusable base class for OpenAI-compatible providers."""

    def chat_path(self, model: str, *, stream: bool) -> str:
        return CHAT_COMPLETIONS_PATH

    def build_payload(self, request: ChatRequest, model: str, *, stream: bool) -> Dict[str, Any]:
        return build_chat_params(request, model, stream=stream, capabilities=self.capabilities)

    def parse_response(self, data: Dict[str, Any], model: str, response_id: str) -> ChatResponse:
        return parse_chat_completion(data, provider=self.name, model=model, response_id=response_id)

    def translate_chunk(self, payload: Dict[str, Any]) -> Optional[ChunkTranslation]:
        return translate_openai_chunk(payload)


__all__ = ["BaseOpenAIStyleProvider"]
