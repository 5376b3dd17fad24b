"""
ChatMessage DTO: one conversational turn in a chat request or response.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

VALID_ROLES = ("system", "user", "assistant", "tool")


@dataclass
class ChatMessage:
    """Conversation message.

    Attributes:
        role: One of ``system``, ``user``, ``assistant`` or ``tool``.
        content: Message text (may be empty for a pure function call).
        name: Optional author/tool name.
        function_call: Opaque function-call payload (``{"name", "arguments"}``).
    """

    role: str
    content: str
    name: Optional[str] = None
    function_call: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            data["name"] = self.name
        if self.function_call:
            data["function_call"] = dict(self.function_call)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessage":
        """Build a message from a plain mapping (``functionCall`` accepted)."""
        return cls(
            role=data.get("role"),  # type: ignore[arg-type]
            content=data.get("content"),  # type: ignore[arg-type]
            name=data.get("name"),
            function_call=data.get("function_call") or data.get("functionCall"),
        )


__all__ = ["ChatMessage", "VALID_ROLES"]
