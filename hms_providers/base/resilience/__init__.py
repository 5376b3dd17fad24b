"""Resilience primitives (retry with exponential backoff)."""

from .retry import (
    AttemptLogger,
    BackoffSchedule,
    DEFAULT_RETRY_CONFIG,
    RetryConfig,
    RetryPolicy,
)

__all__ = [
    "AttemptLogger",
    "BackoffSchedule",
    "DEFAULT_RETRY_CONFIG",
    "RetryConfig",
    "RetryPolicy",
]
