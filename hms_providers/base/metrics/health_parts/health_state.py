"""Coarse provider health states."""
from __future__ import annotations

from enum import Enum


class HealthState(str, Enum):
    """Lifecycle state of one provider.

    ``UNINITIALIZED`` → ``HEALTHY`` after a successful initialize.
    ``HEALTHY`` ↔ ``DEGRADED`` driven by consecutive transient failures.
    ``UNREACHABLE`` after an init failure or an auth rejection; only a new
    initialize can leave it.
    """

    UNINITIALIZED = "uninitialized"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNREACHABLE = "unreachable"


__all__ = ["HealthState"]
