"""
Uniform error surfaced by every provider operation.

Whatever the vendor or transport raised, callers only ever see an
:class:`AIError` (or one of its subclasses) carrying a normalized
:class:`ErrorCode`, the provider key and, when the failure came from an HTTP
exchange, the status code and the raw vendor payload.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

from .error_code import ErrorCode, TRANSIENT_CODES


@dataclass(eq=False)
class AIError(Exception):
    """Structured provider error.

    Attributes:
        message: Human-readable description safe to log and return to clients.
        code: Normalized :class:`ErrorCode`; subclasses supply a default.
        provider: Provider key where the error originated (``"deepseek"``...).
        model: Model involved in the failing call, when known.
        http_status: Vendor HTTP status when the error came from a response.
        raw: Original vendor payload or exception, for diagnostics only.
    """

    default_code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN

    message: str
    code: Optional[ErrorCode] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    http_status: Optional[int] = None
    raw: Any = None

    def __post_init__(self) -> None:
        if self.code is None:
            self.code = self.default_code
        elif not isinstance(self.code, ErrorCode):
            self.code = ErrorCode(self.code)
        Exception.__init__(self, self.message)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.provider or '-'}:{self.model or '-'} {self.code.value}: {self.message}"

    @property
    def transient(self) -> bool:
        """True when the code belongs to the retryable family."""
        return self.code in TRANSIENT_CODES

    def with_context(self, *, provider: Optional[str] = None, model: Optional[str] = None) -> "AIError":
        """Fill in provider/model when missing and return ``self``."""
        if provider and not self.provider:
            self.provider = provider
        if model and not self.model:
            self.model = model
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable view (the raw payload is never included)."""
        data: Dict[str, Any] = {
            "message": self.message,
            "code": self.code.value,
            "provider": self.provider,
        }
        if self.model:
            data["model"] = self.model
        if self.http_status is not None:
            data["http_status"] = self.http_status
        return data


__all__ = ["AIError"]
