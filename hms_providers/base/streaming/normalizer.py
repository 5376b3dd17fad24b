"""Stream normalizer: vendor event stream → ordered ``StreamResponse`` chunks.

The normalizer owns the streaming lifecycle for one call:

1. *Priming* runs under the retry policy: open the vendor stream and pull
   the first normalized item. Any failure here happened before the consumer
   saw a chunk, so it is safe to retry.
2. Once the first chunk is handed out, a failure is never retried; it is
   converted into exactly one terminal chunk carrying the error.
3. The vendor sentinel (or EOF for vendors without one) produces the
   terminal ``done`` chunk with the last reported usage and finish reason.

The opened source is registered on an ``ExitStack`` so it is closed on every
exit path, including a consumer that stops iterating early.
"""
from __future__ import annotations

import logging
import time
from contextlib import ExitStack, suppress
from typing import Any, Callable, Dict, Iterable, Iterator, NamedTuple, Optional, Tuple

from ..errors import AIError, StreamParseError, TransportError, to_ai_error
from ..logging import LogContext, get_logger, normalized_log_event
from ..models import MessageDelta, StreamResponse, TokenUsage
from ..resilience.retry import RetryPolicy
from .sse import DATA_PREFIX, DONE_SENTINEL, STREAM_DONE, iter_sse_payloads
from .stream_outcome import StreamOutcome
from .streaming_metrics import StreamMetrics, apply_token_usage


class ChunkTranslation(NamedTuple):
    """Vendor payload translated into generic fields."""

    delta: Optional[MessageDelta] = None
    usage: Optional[TokenUsage] = None
    finish_reason: Optional[str] = None


Translator = Callable[[Dict[str, Any]], Optional[ChunkTranslation]]

_EOF = object()


def register_stream_cleanup(stream: Any, stack: ExitStack) -> None:
    """Register a close callback for the native stream when it has one."""
    close_fn = getattr(stream, "close", None)
    if callable(close_fn):
        def _safe_close() -> None:
            with suppress(Exception):
                close_fn()

        stack.callback(_safe_close)


class StreamNormalizer:
    """Drive one vendor stream and yield normalized chunks."""

    def __init__(
        self,
        *,
        provider: str,
        model: str,
        response_id: str,
        opener: Callable[[], Iterable[Any]],
        translator: Translator,
        retry_policy: Optional[RetryPolicy] = None,
        prefix: str = DATA_PREFIX,
        sentinel: Optional[str] = DONE_SENTINEL,
        on_complete: Optional[Callable[[StreamOutcome], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.provider = provider
        self.model = model
        self.response_id = response_id
        self._opener = opener
        self._translator = translator
        self._retry = retry_policy or RetryPolicy.single_attempt()
        self._prefix = prefix
        self._sentinel = sentinel
        self._on_complete = on_complete
        self._logger = logger or get_logger("streaming")
        self.ctx = LogContext(provider=provider, model=model, request_id=response_id)
        self.metrics = StreamMetrics()
        self._usage: Optional[TokenUsage] = None
        self._finish_reason: Optional[str] = None
        self._completed = False
        self._t0 = 0.0

    # ------------------------------------------------------------------ run
    def run(self) -> Iterator[StreamResponse]:
        self._t0 = time.perf_counter()
        normalized_log_event(self._logger, "stream.start", self.ctx, phase="start", emitted=False)
        with ExitStack() as stack:
            try:
                source, events, first = self._retry.call(
                    self._prime,
                    provider=self.provider,
                    model=self.model,
                    phase="stream.start",
                )
            except AIError as err:
                yield self._finish(error=err)
                return
            stack.callback(events.close)
            register_stream_cleanup(source, stack)

            item = first
            try:
                while item is not STREAM_DONE:
                    if item is _EOF:
                        if self._sentinel is not None:
                            raise TransportError(
                                message="stream ended before the terminator",
                                provider=self.provider,
                                model=self.model,
                            )
                        break
                    self._observe(item)
                    yield item
                    item = next(events, _EOF)
            except GeneratorExit:
                self._complete(abandoned=True)
                raise
            except Exception as exc:  # noqa: BLE001 - surfaced as terminal chunk
                yield self._finish(error=to_ai_error(exc, provider=self.provider, model=self.model))
                return
            yield self._finish()

    # -------------------------------------------------------------- helpers
    def _prime(self) -> Tuple[Any, Iterator[Any], Any]:
        """Open the source and pull the first item (retried as a unit)."""
        self._usage = None
        self._finish_reason = None
        source = self._opener()
        try:
            events = self._events(source)
            first = next(events, _EOF)
            if first is _EOF and self._sentinel is not None:
                raise TransportError(
                    message="stream ended before any data",
                    provider=self.provider,
                    model=self.model,
                )
        except BaseException:
            with suppress(Exception):
                getattr(source, "close", lambda: None)()
            raise
        return source, events, first

    def _events(self, source: Iterable[Any]) -> Iterator[Any]:
        for payload in iter_sse_payloads(
            source,
            prefix=self._prefix,
            sentinel=self._sentinel,
            on_parse_error=self._log_parse_error,
        ):
            if payload is STREAM_DONE:
                yield STREAM_DONE
                return
            chunk = self._translate(payload)
            if chunk is not None:
                yield chunk

    def _translate(self, payload: Dict[str, Any]) -> Optional[StreamResponse]:
        try:
            translated = self._translator(payload)
        except AIError:
            raise
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            self._log_parse_error(StreamParseError(message=f"untranslatable fragment: {exc}", raw=payload))
            return None
        if translated is None:
            return None
        if translated.usage is not None:
            self._usage = translated.usage
        if translated.finish_reason:
            self._finish_reason = translated.finish_reason
        delta = translated.delta
        if delta is None or delta.is_empty():
            return None
        return StreamResponse(
            id=self.response_id,
            provider=self.provider,
            model=self.model,
            delta=delta,
            usage=translated.usage,
            finish_reason=translated.finish_reason,
        )

    def _observe(self, chunk: StreamResponse) -> None:
        if self.metrics.emitted == 0:
            self.metrics.time_to_first_token_ms = (time.perf_counter() - self._t0) * 1000.0
        self.metrics.emitted += 1

    def _log_parse_error(self, err: StreamParseError) -> None:
        err.with_context(provider=self.provider, model=self.model)
        normalized_log_event(
            self._logger,
            "stream.parse_error",
            self.ctx,
            phase="parse",
            error_code=err.code.value,
            level=logging.WARNING,
            message=err.message,
        )

    def _finish(self, error: Optional[AIError] = None) -> StreamResponse:
        """Build the terminal chunk and report the outcome once."""
        terminal = StreamResponse(
            id=self.response_id,
            provider=self.provider,
            model=self.model,
            delta=MessageDelta(),
            usage=self._usage,
            finish_reason="error" if error is not None else (self._finish_reason or "stop"),
            error=error,
            done=True,
        )
        self._complete(error=error)
        return terminal

    def _complete(self, *, error: Optional[AIError] = None, abandoned: bool = False) -> None:
        if self._completed:
            return
        self._completed = True
        self.metrics.total_duration_ms = (time.perf_counter() - self._t0) * 1000.0
        apply_token_usage(self.metrics, self._usage)
        success = error is None and (not abandoned or self.metrics.emitted > 0)
        normalized_log_event(
            self._logger,
            "stream.end" if error is None else "stream.error",
            self.ctx,
            phase="finalize",
            error_code=(error.code.value if error else None),
            emitted=self.metrics.emitted > 0,
            tokens=self.metrics.tokens,
            level=logging.INFO if error is None else logging.WARNING,
            chunks=self.metrics.emitted,
            abandoned=abandoned or None,
            time_to_first_token_ms=self.metrics.time_to_first_token_ms,
            total_duration_ms=self.metrics.total_duration_ms,
        )
        if self._on_complete is not None:
            outcome = StreamOutcome(
                success=success,
                emitted=self.metrics.emitted,
                usage=self._usage,
                error=error,
                latency_ms=self.metrics.total_duration_ms,
                abandoned=abandoned,
            )
            with suppress(Exception):
                self._on_complete(outcome)


def failed_stream(
    *,
    provider: str,
    model: str,
    response_id: str,
    error: AIError,
    on_complete: Optional[Callable[[StreamOutcome], None]] = None,
) -> Iterator[StreamResponse]:
    """Yield the single terminal chunk of a stream that could not start."""
    error.with_context(provider=provider, model=model)
    if on_complete is not None:
        with suppress(Exception):
            on_complete(StreamOutcome(success=False, emitted=0, usage=None, error=error, latency_ms=0.0))
    yield StreamResponse(
        id=response_id,
        provider=provider,
        model=model,
        finish_reason="error",
        error=error,
        done=True,
    )


__all__ = [
    "ChunkTranslation",
    "Translator",
    "StreamNormalizer",
    "failed_stream",
    "register_stream_cleanup",
]
