from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from pydantic import BaseModel, ConfigDict, Field

from hms_providers.base.errors import AIError, ErrorCode
from hms_providers.manager import ProviderManager
from hms_providers.service.chat_request_build import build_chat_request


class ChatMessageDTO(BaseModel):
    """Represents a single chat message with a role and content."""

    role: str
    content: str = ""
    name: Optional[str] = None
    function_call: Optional[Dict[str, Any]] = Field(default=None, alias="functionCall")

    model_config = ConfigDict(populate_by_name=True)


class PatientContext(BaseModel):
    """Consultation context attached to the ``message`` shorthand.

    Unknown keys are accepted and ignored so front ends can send their whole
    patient panel.
    """

    patient_id: Optional[str] = Field(default=None, alias="patientId")
    symptoms: Optional[Any] = None
    history: Optional[Any] = None

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class ChatBody(BaseModel):
    """Represents the body of a chat request.

    Either ``messages`` or the ``message``/``context`` shorthand must be
    given. ``provider`` pins the call to one provider and disables failover.
    """

    messages: Optional[List[ChatMessageDTO]] = None
    message: Optional[str] = None
    context: Optional[PatientContext] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    temperature: Optional[float] = None
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens")
    top_p: Optional[float] = Field(default=None, alias="topP")
    frequency_penalty: Optional[float] = Field(default=None, alias="frequencyPenalty")
    presence_penalty: Optional[float] = Field(default=None, alias="presencePenalty")
    tools: Optional[List[Dict[str, Any]]] = None
    stream: bool = False

    model_config = ConfigDict(populate_by_name=True)


class SwitchBody(BaseModel):
    """Body of the provider switch request."""

    provider: str = ""


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION: 400,
    ErrorCode.UNKNOWN_PROVIDER: 404,
    ErrorCode.RATE_LIMIT: 429,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.NOT_INITIALIZED: 503,
    ErrorCode.UNAVAILABLE: 503,
    ErrorCode.NO_HEALTHY_PROVIDER: 503,
    ErrorCode.AUTH: 502,
    ErrorCode.MISSING_API_KEY: 502,
    ErrorCode.TRANSPORT: 502,
    ErrorCode.SERVER_ERROR: 502,
    ErrorCode.VENDOR: 502,
    ErrorCode.NOT_FOUND: 502,
    ErrorCode.STREAM_PARSE: 502,
}


def status_for_error(err: AIError) -> int:
    """HTTP status returned to clients for a classified provider error."""
    return _STATUS_BY_CODE.get(err.code, 500)


def _http_error(err: AIError, title: str, status_code: Optional[int] = None) -> HTTPException:
    detail = {"error": title, **err.to_dict()}
    return HTTPException(status_code=status_code or status_for_error(err), detail=detail)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_chat(body: ChatBody, manager: ProviderManager) -> Dict[str, Any]:
    """Run a blocking chat call and return the response payload.

    ``message`` is flattened to the reply text for clients that only render
    a string; ``data`` carries the full normalized response.
    """
    try:
        request = build_chat_request(body)
        response = manager.chat(request, provider=body.provider)
    except AIError as err:
        raise _http_error(err, "Chat failed") from err
    data = response.to_dict()
    data["message"] = response.text
    return {"success": True, "message": response.text, "data": data}


def _build_providers_response(manager: ProviderManager) -> Dict[str, Any]:
    return {
        "success": True,
        "data": {
            "current": manager.get_current_provider(),
            "available": [status.to_dict() for status in manager.get_providers()],
        },
    }


def _handle_switch(body: SwitchBody, manager: ProviderManager) -> Dict[str, Any]:
    """Switch the current provider.

    Unknown names answer 404; providers that cannot serve (unreachable or
    never initialized) answer 409 with the recorded error.
    """
    name = (body.provider or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail={"error": "Invalid request", "message": "provider is required"})
    try:
        status = manager.switch_provider(name)
    except AIError as err:
        code = 404 if err.code is ErrorCode.UNKNOWN_PROVIDER else 409
        raise _http_error(err, "Failed to switch provider", code) from err
    return {"success": True, "message": f"Switched to {status.name}", "data": status.to_dict()}


def _build_stats_response(manager: ProviderManager) -> Dict[str, Any]:
    return {"success": True, "data": manager.get_stats()}


__all__ = [
    "ChatMessageDTO",
    "PatientContext",
    "ChatBody",
    "SwitchBody",
    "status_for_error",
    "_http_error",
    "_handle_chat",
    "_handle_switch",
    "_build_providers_response",
    "_build_stats_response",
]
