"""Incremental server-sent-events line parsing for vendor streams.

Vendor streams arrive as arbitrary text chunks. :class:`SSELineBuffer` turns
them into complete lines, carrying any partial trailing line over to the
next read. :func:`iter_sse_payloads` keeps only lines carrying the event
prefix, stops at the sentinel and decodes the remaining payloads as JSON.
A fragment that fails to decode is reported through ``on_parse_error`` and
skipped; it never aborts the stream.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Union

from ..errors import StreamParseError

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class _StreamDone:
    """Marker yielded when the vendor sentinel is seen."""

    _instance: Optional["_StreamDone"] = None

    def __new__(cls) -> "_StreamDone":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "STREAM_DONE"


STREAM_DONE = _StreamDone()

SSEItem = Union[Dict[str, Any], _StreamDone]


class SSELineBuffer:
    """Accumulates text and releases complete lines."""

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, text: str) -> List[str]:
        """Append ``text`` and return every line completed by it."""
        if not text:
            return []
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """Return the buffered partial line (if any) and reset."""
        rest, self._buffer = self._buffer, ""
        rest = rest.rstrip("\r")
        return [rest] if rest.strip() else []

    @property
    def pending(self) -> str:
        return self._buffer


def iter_sse_payloads(
    chunks: Iterable[Union[str, bytes]],
    *,
    prefix: str = DATA_PREFIX,
    sentinel: Optional[str] = DONE_SENTINEL,
    on_parse_error: Optional[Callable[[StreamParseError], None]] = None,
) -> Iterator[SSEItem]:
    """Yield decoded JSON payloads, then :data:`STREAM_DONE` at the sentinel.

    Reading stops as soon as the sentinel is seen. When ``sentinel`` is
    ``None`` the stream simply runs to exhaustion.
    """
    buffer = SSELineBuffer()

    def _lines() -> Iterator[str]:
        for chunk in chunks:
            if isinstance(chunk, (bytes, bytearray)):
                chunk = chunk.decode("utf-8", errors="replace")
            yield from buffer.feed(chunk)
        yield from buffer.flush()

    for line in _lines():
        stripped = line.strip()
        if not stripped.startswith(prefix):
            continue
        data = stripped[len(prefix):].strip()
        if not data:
            continue
        if sentinel is not None and data == sentinel:
            yield STREAM_DONE
            return
        try:
            payload = json.loads(data)
        except ValueError as exc:
            if on_parse_error is not None:
                on_parse_error(StreamParseError(message=f"malformed stream fragment: {exc}", raw=data))
            continue
        if not isinstance(payload, dict):
            if on_parse_error is not None:
                on_parse_error(StreamParseError(message="stream fragment is not a JSON object", raw=data))
            continue
        yield payload


def format_sse(payload: Union[str, Dict[str, Any]]) -> str:
    """Frame one event as ``data: <payload>\\n\\n`` (dicts are JSON encoded)."""
    body = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return f"{DATA_PREFIX} {body}\n\n"


__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "STREAM_DONE",
    "SSELineBuffer",
    "iter_sse_payloads",
    "format_sse",
]
