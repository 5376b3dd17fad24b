"""
ChatRequest DTO for provider-agnostic chat invocations.

Adapters translate this normalized shape into vendor payloads. Validation
happens once, up front, so malformed requests never reach a vendor.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, List, Optional

from ..errors import ValidationError
from .message import ChatMessage, VALID_ROLES
from .tool_spec import ToolSpec


@dataclass
class ChatRequest:
    """Normalized chat request sent to provider adapters.

    Attributes:
        messages: Ordered conversation; the order is preserved on the wire.
        system_prompt: Optional instruction prepended as a ``system`` turn.
        model: Model override; adapters fall back to their default model.
        temperature: Sampling temperature in ``[0, 2]``.
        max_tokens: Completion token cap (positive).
        top_p: Nucleus sampling in ``(0, 1]``.
        frequency_penalty: In ``[-2, 2]``.
        presence_penalty: In ``[-2, 2]``.
        tools: Optional function declarations.
    """

    messages: List[ChatMessage]
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    tools: Optional[List[ToolSpec]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.messages, list):
            self.messages = [ChatMessage.from_dict(m) if isinstance(m, dict) else m for m in self.messages]
        if self.tools:
            self.tools = [ToolSpec.from_dict(t) if isinstance(t, dict) else t for t in self.tools]

    def validate(self) -> "ChatRequest":
        """Raise :class:`ValidationError` when the request is malformed.

        Returns ``self`` so calls can be chained.
        """
        if not isinstance(self.messages, list) or not self.messages:
            raise ValidationError(message="messages must be a non-empty list")
        for idx, msg in enumerate(self.messages):
            if not isinstance(msg, ChatMessage):
                raise ValidationError(message=f"messages[{idx}] is not a chat message")
            if msg.role not in VALID_ROLES:
                raise ValidationError(message=f"messages[{idx}].role '{msg.role}' is not one of {', '.join(VALID_ROLES)}")
            if not isinstance(msg.content, str):
                raise ValidationError(message=f"messages[{idx}].content must be a string")
        if self.system_prompt is not None and not isinstance(self.system_prompt, str):
            raise ValidationError(message="system_prompt must be a string")
        _check_range("temperature", self.temperature, 0.0, 2.0)
        _check_range("frequency_penalty", self.frequency_penalty, -2.0, 2.0)
        _check_range("presence_penalty", self.presence_penalty, -2.0, 2.0)
        if self.top_p is not None:
            if not _is_number(self.top_p) or not 0.0 < self.top_p <= 1.0:
                raise ValidationError(message="top_p must be in (0, 1]")
        if self.max_tokens is not None:
            if isinstance(self.max_tokens, bool) or not isinstance(self.max_tokens, int) or self.max_tokens <= 0:
                raise ValidationError(message="max_tokens must be a positive integer")
        for idx, tool in enumerate(self.tools or ()):
            if not isinstance(tool, ToolSpec) or not tool.name:
                raise ValidationError(message=f"tools[{idx}] must declare a name")
        return self

    def wire_messages(self) -> List[ChatMessage]:
        """Return the messages with ``system_prompt`` prepended when set."""
        if self.system_prompt:
            return [ChatMessage(role="system", content=self.system_prompt), *self.messages]
        return list(self.messages)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable dictionary representation of the request."""
        return {
            "messages": [m.to_dict() for m in self.messages],
            "system_prompt": self.system_prompt,
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "tools": [t.to_dict() for t in self.tools] if self.tools else None,
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _check_range(name: str, value: Any, low: float, high: float) -> None:
    if value is None:
        return
    if not _is_number(value) or not low <= value <= high:
        raise ValidationError(message=f"{name} must be in [{low:g}, {high:g}]")


__all__ = ["ChatRequest"]
