"""
Error classification helpers.

Two entry points:

* :func:`classify_exception` maps any exception to a normalized
  :class:`ErrorCode` (HTTP status, httpx exception type, then message
  heuristics as a last resort).
* :func:`to_ai_error` turns any exception, or a failed vendor response via
  :func:`error_from_status`, into the matching :class:`AIError` subclass.

:func:`is_transient` is the default classifier used by the retry executor.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

import httpx

from .ai_error import AIError
from .error_code import ErrorCode, TRANSIENT_CODES
from .taxonomy import (
    AuthError,
    RateLimitError,
    TransportError,
    VendorError,
    error_for_code,
)


def _extract_status(exc: BaseException) -> Optional[int]:
    """Attempt to extract an HTTP status code from an exception.

    Checked in order: ``exc.http_status``, ``exc.status_code``, ``exc.status``,
    ``exc.response.status_code``. Returns ``None`` when nothing valid is found.
    """
    for attr in ("http_status", "status_code", "status"):
        val = getattr(exc, attr, None)
        if isinstance(val, int) and 100 <= val < 600:
            return val
    resp = getattr(exc, "response", None)
    if resp is not None:
        sc = getattr(resp, "status_code", None)
        if isinstance(sc, int) and 100 <= sc < 600:
            return sc
    return None


_HTTP_STATUS_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.VENDOR,
    401: ErrorCode.AUTH,
    403: ErrorCode.AUTH,
    404: ErrorCode.NOT_FOUND,
    408: ErrorCode.TIMEOUT,
    409: ErrorCode.VENDOR,
    422: ErrorCode.VENDOR,
    429: ErrorCode.RATE_LIMIT,
    500: ErrorCode.SERVER_ERROR,
    502: ErrorCode.TRANSPORT,
    503: ErrorCode.UNAVAILABLE,
    504: ErrorCode.TIMEOUT,
}


def _code_for_status(status: int) -> ErrorCode:
    code = _HTTP_STATUS_MAP.get(status)
    if code is not None:
        return code
    if status >= 500:
        return ErrorCode.SERVER_ERROR
    if status >= 400:
        return ErrorCode.VENDOR
    return ErrorCode.UNKNOWN


def _heuristic_from_message(msg: str) -> Optional[ErrorCode]:  # pragma: no cover - simple mapping
    """Substring heuristic for exceptions without status or type information."""
    pattern_groups = (
        (ErrorCode.TIMEOUT, ("timeout", "timed out")),
        (ErrorCode.AUTH, ("unauthorized", "forbidden", "api key", "invalid key")),
        (ErrorCode.UNAVAILABLE, ("unavailable", "temporarily down", "overloaded")),
        (ErrorCode.TRANSPORT, ("connection reset", "connection refused", "connection aborted")),
        (ErrorCode.SERVER_ERROR, ("server error", "internal error")),
    )
    if "rate" in msg and "limit" in msg:
        return ErrorCode.RATE_LIMIT
    for code, patterns in pattern_groups:
        if any(p in msg for p in patterns):
            return code
    return None


def classify_exception(exc: BaseException) -> ErrorCode:
    """Classify an exception into a normalized :class:`ErrorCode`.

    Precedence:
        1. ``AIError`` passthrough.
        2. httpx timeouts and builtin ``TimeoutError``.
        3. HTTP status mapping.
        4. httpx transport failures and ``ConnectionError``.
        5. Message heuristics.
        6. ``UNKNOWN`` fallback.
    """
    if isinstance(exc, AIError):
        return exc.code
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return ErrorCode.TIMEOUT
    status = _extract_status(exc)
    if status is not None:
        return _code_for_status(status)
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return ErrorCode.TRANSPORT
    code = _heuristic_from_message(str(exc).lower())
    return code if code is not None else ErrorCode.UNKNOWN


def parse_vendor_error_body(body: Any) -> Tuple[Optional[str], Optional[str]]:
    """Extract ``(message, vendor_code)`` from a vendor error payload.

    Understands the OpenAI-compatible ``{"error": {"message", "code"|"type"}}``
    shape and Google's ``{"error": {"message", "status", "details"}}``.
    ``body`` may be raw text, bytes or an already decoded mapping.
    """
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        text = body.strip()
        if not text:
            return None, None
        try:
            body = json.loads(text)
        except ValueError:
            return text[:500], None
    if isinstance(body, list) and body:
        body = body[0]
    if not isinstance(body, dict):
        return None, None
    err = body.get("error", body)
    if isinstance(err, str):
        return err, None
    if not isinstance(err, dict):
        return None, None
    message = err.get("message") or body.get("message")
    vendor_code = err.get("code") or err.get("type") or err.get("status")
    for detail in err.get("details") or ():
        if isinstance(detail, dict) and detail.get("reason"):
            vendor_code = detail["reason"]
            break
    return (str(message) if message else None), (str(vendor_code) if vendor_code else None)


# Vendor reasons that mean "bad credential" even when sent with a 400
_AUTH_VENDOR_CODES = frozenset({"API_KEY_INVALID", "invalid_api_key", "PERMISSION_DENIED", "UNAUTHENTICATED"})


def error_from_status(
    status: int,
    body: Any = None,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> AIError:
    """Map a failed vendor HTTP response to the matching :class:`AIError`."""
    vendor_message, vendor_code = parse_vendor_error_body(body)
    message = vendor_message or f"HTTP {status}"
    code = _code_for_status(status)
    if vendor_code in _AUTH_VENDOR_CODES:
        code = ErrorCode.AUTH
    common = {"provider": provider, "model": model, "http_status": status, "raw": body}
    if code is ErrorCode.AUTH:
        return AuthError(message=message, **common)
    if code is ErrorCode.RATE_LIMIT:
        return RateLimitError(message=message, **common)
    if code in TRANSIENT_CODES:
        return TransportError(message=message, code=code, **common)
    return VendorError(message=message, code=code, vendor_code=vendor_code, **common)


def to_ai_error(
    exc: BaseException,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> AIError:
    """Return ``exc`` as an :class:`AIError`, classifying it when needed.

    ``AIError`` instances are returned as-is (with provider/model filled in
    when missing) so that identity is preserved across retries.
    """
    if isinstance(exc, AIError):
        return exc.with_context(provider=provider, model=model)
    if isinstance(exc, httpx.HTTPStatusError):
        body: Any = None
        try:
            body = exc.response.text
        except httpx.ResponseNotRead:
            body = None
        return error_from_status(exc.response.status_code, body, provider=provider, model=model)
    code = classify_exception(exc)
    message = str(exc) or exc.__class__.__name__
    return error_for_code(
        code,
        message,
        provider=provider,
        model=model,
        http_status=_extract_status(exc),
        raw=exc,
    )


def is_transient(error: BaseException) -> bool:
    """Default retry classifier: timeouts, connection failures, 429 and 5xx."""
    return classify_exception(error) in TRANSIENT_CODES


__all__ = [
    "classify_exception",
    "error_from_status",
    "parse_vendor_error_body",
    "to_ai_error",
    "is_transient",
    "_extract_status",
    "_HTTP_STATUS_MAP",
]
