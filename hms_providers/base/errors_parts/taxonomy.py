"""
Concrete :class:`AIError` subclasses.

Each subclass only changes the default code; callers may still pass an
explicit, more specific ``code`` (for example ``TransportError`` with
``ErrorCode.TIMEOUT``).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from .ai_error import AIError
from .error_code import ErrorCode


class ValidationError(AIError):
    """Request rejected before reaching any vendor."""

    default_code = ErrorCode.VALIDATION


class AuthError(AIError):
    """Credentials missing or rejected by the vendor."""

    default_code = ErrorCode.AUTH


class TransportError(AIError):
    """Network failure, timeout or 5xx/408 response."""

    default_code = ErrorCode.TRANSPORT


class RateLimitError(AIError):
    """Vendor answered 429."""

    default_code = ErrorCode.RATE_LIMIT


@dataclass(eq=False)
class VendorError(AIError):
    """Vendor-reported business error (bad model name, content policy, ...)."""

    default_code = ErrorCode.VENDOR

    vendor_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.vendor_code:
            data["vendor_code"] = self.vendor_code
        return data


class StreamParseError(AIError):
    """A stream fragment could not be decoded."""

    default_code = ErrorCode.STREAM_PARSE


class UnknownProviderError(AIError):
    """Provider name is not registered."""

    default_code = ErrorCode.UNKNOWN_PROVIDER


class ProviderUnavailableError(AIError):
    """Provider is registered but not usable (uninitialized or unreachable)."""

    default_code = ErrorCode.UNAVAILABLE


class NoHealthyProviderError(AIError):
    """Initialization finished with zero healthy providers."""

    default_code = ErrorCode.NO_HEALTHY_PROVIDER


_CODE_TO_CLASS: Dict[ErrorCode, Type[AIError]] = {
    ErrorCode.VALIDATION: ValidationError,
    ErrorCode.AUTH: AuthError,
    ErrorCode.MISSING_API_KEY: AuthError,
    ErrorCode.TRANSPORT: TransportError,
    ErrorCode.TIMEOUT: TransportError,
    ErrorCode.SERVER_ERROR: TransportError,
    ErrorCode.UNAVAILABLE: TransportError,
    ErrorCode.RATE_LIMIT: RateLimitError,
    ErrorCode.VENDOR: VendorError,
    ErrorCode.NOT_FOUND: VendorError,
    ErrorCode.STREAM_PARSE: StreamParseError,
    ErrorCode.UNKNOWN_PROVIDER: UnknownProviderError,
    ErrorCode.NO_HEALTHY_PROVIDER: NoHealthyProviderError,
}


def error_for_code(code: ErrorCode, message: str, **kwargs: Any) -> AIError:
    """Build the subclass matching ``code`` (plain :class:`AIError` otherwise)."""
    klass = _CODE_TO_CLASS.get(code, AIError)
    return klass(message=message, code=code, **kwargs)


__all__ = [
    "ValidationError",
    "AuthError",
    "TransportError",
    "RateLimitError",
    "VendorError",
    "StreamParseError",
    "UnknownProviderError",
    "ProviderUnavailableError",
    "NoHealthyProviderError",
    "error_for_code",
]
