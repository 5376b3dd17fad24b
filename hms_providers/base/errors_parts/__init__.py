"""Errors parts package.

Prefer importing from ``hms_providers.base.errors`` for the stable surface.
"""

from .error_code import ErrorCode, TRANSIENT_CODES
from .ai_error import AIError
from .taxonomy import (
    AuthError,
    NoHealthyProviderError,
    ProviderUnavailableError,
    RateLimitError,
    StreamParseError,
    TransportError,
    UnknownProviderError,
    ValidationError,
    VendorError,
    error_for_code,
)
from .classification import (
    classify_exception,
    error_from_status,
    is_transient,
    parse_vendor_error_body,
    to_ai_error,
)

__all__ = [
    "ErrorCode",
    "TRANSIENT_CODES",
    "AIError",
    "AuthError",
    "NoHealthyProviderError",
    "ProviderUnavailableError",
    "RateLimitError",
    "StreamParseError",
    "TransportError",
    "UnknownProviderError",
    "ValidationError",
    "VendorError",
    "error_for_code",
    "classify_exception",
    "error_from_status",
    "is_transient",
    "parse_vendor_error_body",
    "to_ai_error",
]
