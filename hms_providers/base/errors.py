"""Unified provider error taxonomy public surface.

Re-exports the implementations under ``hms_providers.base.errors_parts`` so
call sites keep a single stable import path.
"""

from .errors_parts.error_code import ErrorCode, TRANSIENT_CODES
from .errors_parts.ai_error import AIError
from .errors_parts.taxonomy import (
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
from .errors_parts.classification import (
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
