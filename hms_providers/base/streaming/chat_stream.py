"""Closable iterator handed to callers of ``stream_chat``.

:class:`ChatStream` wraps the normalizer generator. It is lazy (nothing
touches the network before the first ``next``), finite, single-use and can
be closed at any point; closing releases the vendor connection immediately.
It also records the terminal chunk for post-hoc inspection.
"""
from __future__ import annotations

from typing import Iterator, Optional

from ..errors import AIError
from ..models import StreamResponse


class ChatStream:
    """Iterator of :class:`StreamResponse` with deterministic cleanup.

    Usable as a context manager::

        with manager.stream_chat(request) as stream:
            for chunk in stream:
                ...
    """

    def __init__(self, chunks: Iterator[StreamResponse], *, provider: str, model: str, response_id: str) -> None:
        self._chunks = chunks
        self.provider = provider
        self.model = model
        self.id = response_id
        self._finished = False
        self._closed = False
        self._terminal_event: StreamResponse | None = None

    def __iter__(self) -> "ChatStream":
        return self

    def __next__(self) -> StreamResponse:
        if self._closed or self._finished:
            raise StopIteration
        chunk = next(self._chunks)
        # after failover the answering provider differs from the first candidate
        self.id, self.provider, self.model = chunk.id, chunk.provider, chunk.model
        if chunk.done:
            self._finished = True
            self._terminal_event = chunk
            self.close()
        return chunk

    def __enter__(self) -> "ChatStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Stop the stream and release the transport. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        close_fn = getattr(self._chunks, "close", None)
        if callable(close_fn):
            close_fn()

    @property
    def finished(self) -> bool:  # noqa: D401 - short property
        """Whether the terminal chunk has been delivered."""
        return self._finished

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def terminal_event(self) -> Optional[StreamResponse]:
        return self._terminal_event

    @property
    def error(self) -> Optional[AIError]:
        return self._terminal_event.error if self._terminal_event else None


__all__ = ["ChatStream"]
