"""Auxiliary logging helpers (formatter, context, redaction) used by base.logging."""

from .json_formatter import JsonFormatter, ISO
from .logging_context import LogContext
from .redaction import redact_secret, redact_headers

__all__ = ["JsonFormatter", "ISO", "LogContext", "redact_secret", "redact_headers"]
