"""
MessageDelta DTO: the partial message carried by a stream chunk.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class MessageDelta:
    role: Optional[str] = None
    content: Optional[str] = None
    function_call: Optional[Dict[str, Any]] = None

    def is_empty(self) -> bool:
        return not (self.role or self.content or self.function_call)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.role:
            data["role"] = self.role
        if self.content is not None:
            data["content"] = self.content
        if self.function_call:
            data["function_call"] = dict(self.function_call)
        return data


__all__ = ["MessageDelta"]
