"""
Normalized error codes (taxonomy).

Values are lowercase snake_case and are a stable public contract for logging,
the HTTP error payloads and the retry classifier.
"""
from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    VALIDATION = "validation"
    AUTH = "auth"
    MISSING_API_KEY = "missing_api_key"  # pragma: allowlist secret - code name, not a secret
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    UNAVAILABLE = "unavailable"
    VENDOR = "vendor"
    NOT_FOUND = "not_found"
    STREAM_PARSE = "stream_parse"
    UNKNOWN_PROVIDER = "unknown_provider"
    NOT_INITIALIZED = "not_initialized"
    NO_HEALTHY_PROVIDER = "no_healthy_provider"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


# Codes the default retry classifier treats as worth another attempt.
TRANSIENT_CODES = frozenset(
    {
        ErrorCode.TRANSPORT,
        ErrorCode.TIMEOUT,
        ErrorCode.RATE_LIMIT,
        ErrorCode.SERVER_ERROR,
        ErrorCode.UNAVAILABLE,
    }
)


__all__ = ["ErrorCode", "TRANSIENT_CODES"]
