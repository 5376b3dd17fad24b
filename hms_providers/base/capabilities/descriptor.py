"""Static capability descriptor declared by each vendor adapter.

Descriptors are immutable class-level data: adapters expose one instance and
the manager/HTTP layer only read it. ``supported_languages`` and ``models``
are stored as immutable containers so a descriptor can be shared safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Tuple

CAP_CHAT = "chat"
CAP_STREAM = "stream"
CAP_VISION = "vision"
CAP_SPEECH = "speech"
CAP_EMBEDDING = "embedding"
CAP_FUNCTION_CALLING = "function_calling"

_FLAGS = (CAP_CHAT, CAP_STREAM, CAP_VISION, CAP_SPEECH, CAP_EMBEDDING, CAP_FUNCTION_CALLING)


@dataclass(frozen=True)
class CapabilityDescriptor:
    """What a provider can do.

    Attributes:
        chat / stream / vision / speech / embedding / function_calling: flags.
        max_context_length: Context window of the default model, in tokens.
        supported_languages: ISO language codes (``"zh"``, ``"en"``...).
        models: Model identifiers the adapter advertises.
    """

    chat: bool = True
    stream: bool = True
    vision: bool = False
    speech: bool = False
    embedding: bool = False
    function_calling: bool = False
    max_context_length: int = 4096
    supported_languages: FrozenSet[str] = field(default_factory=frozenset)
    models: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # frozen: coerce via object.__setattr__
        object.__setattr__(self, "supported_languages", frozenset(self.supported_languages))
        object.__setattr__(self, "models", tuple(self.models))

    def supports(self, capability: str) -> bool:
        """Return the flag named ``capability`` (unknown names are False)."""
        return capability in _FLAGS and bool(getattr(self, capability))

    def enabled(self) -> FrozenSet[str]:
        return frozenset(name for name in _FLAGS if getattr(self, name))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chat": self.chat,
            "stream": self.stream,
            "vision": self.vision,
            "speech": self.speech,
            "embedding": self.embedding,
            "function_calling": self.function_calling,
            "max_context_length": self.max_context_length,
            "supported_languages": sorted(self.supported_languages),
            "models": list(self.models),
        }


__all__ = [
    "CapabilityDescriptor",
    "CAP_CHAT",
    "CAP_STREAM",
    "CAP_VISION",
    "CAP_SPEECH",
    "CAP_EMBEDDING",
    "CAP_FUNCTION_CALLING",
]
