"""Deterministic mock provider for offline testing and local development.

Purpose
-------
Implement the ``AIProvider`` contract without any network traffic so higher
layers (manager, failover, HTTP service, streaming) can be exercised
end to end. Replies are scripted at construction time.

Streaming goes through the same :class:`StreamNormalizer` as the real
adapters: the mock renders its reply as OpenAI-style SSE lines and lets the
shared translator decode them, so the stream contract is identical.

Scripting failures
------------------
``init_error``
    Raised (and recorded as ``UNREACHABLE``) by ``initialize``. The attribute
    may be reset to ``None`` to let a later ``initialize`` succeed.
``errors``
    Queue of errors; each ``chat`` call, and each stream opening, pops one
    and raises it until the queue is empty.
``stream_error_after``
    Interrupt every stream after that many content chunks.
``probe_errors``
    Queue of errors popped by ``health_check``, one per check.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Iterable, Iterator, List, Optional, Union

from ..base.capabilities import CapabilityDescriptor
from ..base.errors import AIError, ErrorCode, ProviderUnavailableError, TransportError
from ..base.interfaces import AIProvider
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.metrics import HealthSnapshot, ProviderHealth
from ..base.models import ChatMessage, ChatRequest, ChatResponse, TokenUsage, new_response_id
from ..base.openai_style_parts import translate_openai_chunk
from ..base.resilience.retry import RetryPolicy
from ..base.streaming import DONE_SENTINEL, ChatStream, StreamNormalizer, StreamOutcome, failed_stream, format_sse
from ..config.provider_config import ProviderConfig

DEFAULT_MOCK_REPLY = "This is a mock response from the medical assistant."
DEFAULT_MOCK_MODEL = "mock-medical"

Reply = Union[str, Callable[[ChatRequest], str]]


class ScriptedSource:
    """Iterable of SSE text lines that remembers whether it was closed."""

    def __init__(self, lines: List[str], *, fail_at: Optional[int] = None, provider: str = "mock") -> None:
        self._lines = lines
        self._fail_at = fail_at
        self._provider = provider
        self.closed = False
        self.consumed = 0

    def __iter__(self) -> Iterator[str]:
        for idx, line in enumerate(self._lines):
            if self.closed:
                return
            if self._fail_at is not None and idx == self._fail_at:
                raise TransportError(message="mock stream interrupted", provider=self._provider)
            self.consumed += 1
            yield line

    def close(self) -> None:
        self.closed = True


def _chunk_text(text: str, chunk_size: int) -> List[str]:
    if not text:
        return []
    return [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)]


def _word_count(text: str) -> int:
    return len(text.split())


class MockProvider(AIProvider):
    """Adapter that returns scripted replies instead of calling a vendor."""

    capabilities = CapabilityDescriptor(
        chat=True,
        stream=True,
        function_calling=True,
        max_context_length=8192,
        supported_languages=frozenset({"zh", "en"}),
        models=(DEFAULT_MOCK_MODEL,),
    )

    def __init__(
        self,
        *,
        name: str = "mock",
        reply: Reply = DEFAULT_MOCK_REPLY,
        model: str = DEFAULT_MOCK_MODEL,
        init_error: Optional[AIError] = None,
        errors: Iterable[AIError] = (),
        probe_errors: Iterable[AIError] = (),
        stream_error_after: Optional[int] = None,
        chunk_size: int = 8,
        health: Optional[ProviderHealth] = None,
    ) -> None:
        self._name = name
        self._reply = reply
        self._model = model
        self.init_error = init_error
        self._errors = deque(errors)
        self._probe_errors = deque(probe_errors)
        self._stream_error_after = stream_error_after
        self._chunk_size = max(1, int(chunk_size))
        self.health = health or ProviderHealth(name)
        self._initialized = False
        self._lock = threading.Lock()
        self._logger = get_logger(f"providers.mock.{name}")
        self.config: Optional[ProviderConfig] = None
        self.chat_calls = 0
        self.stream_opens = 0
        self.init_calls = 0
        self.health_checks = 0
        self.sources: List[ScriptedSource] = []

    @property
    def provider_name(self) -> str:
        return self._name

    def default_model(self) -> Optional[str]:
        return self._model

    def is_healthy(self) -> bool:
        return self.health.healthy

    def push_errors(self, *errors: AIError) -> None:
        """Queue more failures for upcoming calls."""
        with self._lock:
            self._errors.extend(errors)

    def initialize(self, config: ProviderConfig) -> None:
        with self._lock:
            self.init_calls += 1
            if self.init_error is not None:
                self.init_error.with_context(provider=self._name)
                self.health.mark_unreachable(self.init_error)
                raise self.init_error
            self.config = config
            if config.default_model:
                self._model = config.default_model
            self._initialized = True
            self.health.mark_healthy()

    def health_check(self) -> HealthSnapshot:
        with self._lock:
            self.health_checks += 1
            if not self._initialized:
                return self.health.snapshot()
            error = self._probe_errors.popleft() if self._probe_errors else None
        if error is not None:
            self.health.record_failure(error.with_context(provider=self._name))
        else:
            self.health.record_success()
        return self.health.snapshot()

    def _not_initialized(self, model: str) -> ProviderUnavailableError:
        return ProviderUnavailableError(
            message=f"{self._name} provider is not initialized",
            code=ErrorCode.NOT_INITIALIZED,
            provider=self._name,
            model=model,
        )

    def _next_error(self) -> Optional[AIError]:
        with self._lock:
            return self._errors.popleft() if self._errors else None

    def _render(self, request: ChatRequest) -> str:
        return self._reply(request) if callable(self._reply) else str(self._reply)

    def _usage(self, request: ChatRequest, text: str) -> TokenUsage:
        prompt = sum(_word_count(m.content) for m in request.wire_messages())
        completion = _word_count(text)
        return TokenUsage(prompt_tokens=prompt, completion_tokens=completion, total_tokens=prompt + completion)

    def chat(self, request: ChatRequest) -> ChatResponse:
        model = request.model or self._model
        if not self._initialized:
            raise self._not_initialized(model)
        request.validate()
        ctx = LogContext(provider=self._name, model=model)
        normalized_log_event(self._logger, "chat.start", ctx, phase="start")
        with self._lock:
            self.chat_calls += 1
        error = self._next_error()
        if error is not None:
            raise error.with_context(provider=self._name, model=model)
        text = self._render(request)
        response = ChatResponse(
            id=new_response_id(self._name),
            provider=self._name,
            model=model,
            message=ChatMessage(role="assistant", content=text),
            usage=self._usage(request, text),
            finish_reason="stop",
        )
        normalized_log_event(self._logger, "chat.end", ctx, phase="finalize", emitted=True, tokens=response.usage)
        return response

    def stream_chat(
        self,
        request: ChatRequest,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        on_complete: Optional[Callable[[StreamOutcome], None]] = None,
    ) -> ChatStream:
        model = request.model or self._model
        response_id = new_response_id(self._name)
        request.validate()
        if not self._initialized:
            chunks = failed_stream(
                provider=self._name,
                model=model,
                response_id=response_id,
                error=self._not_initialized(model),
                on_complete=on_complete,
            )
            return ChatStream(chunks, provider=self._name, model=model, response_id=response_id)

        def opener() -> ScriptedSource:
            with self._lock:
                self.stream_opens += 1
            error = self._next_error()
            if error is not None:
                raise error
            text = self._render(request)
            lines = [format_sse({"choices": [{"index": 0, "delta": {"role": "assistant", "content": piece}}]})
                     for piece in _chunk_text(text, self._chunk_size)]
            lines.append(format_sse({
                "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
                "usage": self._usage(request, text).to_dict(),
            }))
            lines.append(f"data: {DONE_SENTINEL}\n\n")
            source = ScriptedSource(lines, fail_at=self._stream_error_after, provider=self._name)
            self.sources.append(source)
            return source

        normalizer = StreamNormalizer(
            provider=self._name,
            model=model,
            response_id=response_id,
            opener=opener,
            translator=translate_openai_chunk,
            retry_policy=retry_policy,
            on_complete=on_complete,
            logger=self._logger,
        )
        return ChatStream(normalizer.run(), provider=self._name, model=model, response_id=response_id)

    def close(self) -> None:
        with self._lock:
            self._initialized = False


__all__ = ["MockProvider", "ScriptedSource", "DEFAULT_MOCK_REPLY", "DEFAULT_MOCK_MODEL"]
