"""Helpers that keep credentials out of log payloads."""
from __future__ import annotations

from typing import Mapping, Optional, Dict

_SENSITIVE_HEADERS = ("authorization", "x-goog-api-key", "api-key", "openai-organization")


def redact_secret(value: Optional[str], *, keep: int = 4) -> Optional[str]:
    """Return ``value`` with all but the last ``keep`` characters masked.

    Short secrets are fully masked. ``None`` and empty strings pass through.
    """
    if not value:
        return value
    if len(value) <= keep * 2:
        return "*" * len(value)
    return "*" * (len(value) - keep) + value[-keep:]


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Return a copy of ``headers`` with credential-bearing values masked."""
    out: Dict[str, str] = {}
    for key, val in headers.items():
        out[key] = redact_secret(val) if key.lower() in _SENSITIVE_HEADERS else val
    return out


__all__ = ["redact_secret", "redact_headers"]
