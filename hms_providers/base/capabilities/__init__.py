"""Capability descriptors for provider adapters."""

from .descriptor import (
    CAP_CHAT,
    CAP_EMBEDDING,
    CAP_FUNCTION_CALLING,
    CAP_SPEECH,
    CAP_STREAM,
    CAP_VISION,
    CapabilityDescriptor,
)

__all__ = [
    "CapabilityDescriptor",
    "CAP_CHAT",
    "CAP_STREAM",
    "CAP_VISION",
    "CAP_SPEECH",
    "CAP_EMBEDDING",
    "CAP_FUNCTION_CALLING",
]
