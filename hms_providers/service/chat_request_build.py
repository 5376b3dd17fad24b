"""Chat request construction for the HTTP layer.

Turns an inbound ``ChatBody`` into a provider-agnostic ``ChatRequest``. Two
body shapes are accepted:

* ``{"messages": [...]}``: the conversation is used as given.
* ``{"message": "...", "context": {...}}``: the consultation shorthand used
  by the clinical front end. It expands into the medical-assistant system
  prompt (plus patient context lines) and one user message.
"""

from __future__ import annotations

from typing import Any, List, Optional

from hms_providers.base.errors import ValidationError
from hms_providers.base.models import ChatMessage, ChatRequest, ToolSpec
from hms_providers.config.defaults import MEDICAL_ASSISTANT_SYSTEM_PROMPT


def _render_context_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v is not None)
    return str(value)


def build_system_prompt(context: Any, base_prompt: Optional[str] = None) -> str:
    """Return the system prompt for the shorthand body.

    ``context`` may be ``None``; known fields (``patient_id``, ``symptoms``,
    ``history``) each add one line when set.
    """
    lines = [base_prompt or MEDICAL_ASSISTANT_SYSTEM_PROMPT]
    if context is not None:
        for label, attr in (("Patient ID", "patient_id"), ("Symptoms", "symptoms"), ("History", "history")):
            value = getattr(context, attr, None)
            if value not in (None, "", [], ()):
                lines.append(f"{label}: {_render_context_value(value)}")
    return "\n".join(lines)


def to_messages(dtos: List[Any]) -> List[ChatMessage]:
    """Convert message bodies (pydantic models) into ``ChatMessage`` objects."""
    return [
        ChatMessage(role=m.role, content=m.content, name=m.name, function_call=m.function_call)
        for m in dtos
    ]


def build_chat_request(body) -> ChatRequest:  # body is pydantic ChatBody
    """Construct a ``ChatRequest`` from a request body.

    Raises
    ------
    ValidationError
        Neither a ``message`` string nor a ``messages`` array was supplied.
        Range and emptiness checks are left to ``ChatRequest.validate``.
    """
    if body.message:
        messages = [ChatMessage(role="user", content=body.message)]
        system_prompt = build_system_prompt(body.context, body.system_prompt)
    elif body.messages is not None:
        messages = to_messages(body.messages)
        system_prompt = body.system_prompt
    else:
        raise ValidationError(message='Either "messages" array or "message" string is required')
    return ChatRequest(
        messages=messages,
        system_prompt=system_prompt,
        model=body.model,
        temperature=body.temperature,
        max_tokens=body.max_tokens,
        top_p=body.top_p,
        frequency_penalty=body.frequency_penalty,
        presence_penalty=body.presence_penalty,
        tools=[ToolSpec.from_dict(t) for t in body.tools] if body.tools else None,
    )


__all__ = ["build_chat_request", "build_system_prompt", "to_messages"]
