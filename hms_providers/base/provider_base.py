"""Shared lifecycle for HTTP vendor adapters.

Purpose:
    ``BaseHTTPProvider`` implements everything an adapter does that is not
    vendor specific: initialization with a credential probe, health
    bookkeeping, the single-attempt blocking call, and the stream pipeline
    (``open_text_stream`` → :class:`StreamNormalizer` → :class:`ChatStream`).

Subclass hooks:
    - ``chat_path(model, stream)``: request path relative to the base URL.
    - ``build_payload(request, model, stream)``: vendor JSON body.
    - ``parse_response(data, model, response_id)``: vendor JSON → ``ChatResponse``.
    - ``translate_chunk(payload)``: one decoded stream payload → ``ChunkTranslation``.
    - ``auth_headers(config)`` / ``auth_params(config)``: credential placement.

External dependencies:
    - ``httpx`` through :mod:`hms_providers.base.http`. A transport may be
      injected at construction for tests.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, ClassVar, Dict, Optional

import httpx

from ..config.defaults import DEFAULT_TIMEOUT_MS
from ..config.provider_config import ProviderConfig
from .capabilities import CapabilityDescriptor
from .constants import MISSING_API_KEY_MESSAGE, MODELS_PATH, NOT_INITIALIZED_MESSAGE
from .errors import AIError, AuthError, ErrorCode, ProviderUnavailableError, VendorError, to_ai_error
from .http import build_http_client, open_text_stream, raise_for_vendor_status
from .interfaces import AIProvider
from .log_support import redact_headers
from .logging import LogContext, get_logger, log_event, normalized_log_event
from .metrics import HealthSnapshot, ProviderHealth
from .models import ChatRequest, ChatResponse, new_response_id
from .resilience.retry import RetryPolicy
from .streaming import (
    DONE_SENTINEL,
    ChatStream,
    ChunkTranslation,
    StreamNormalizer,
    StreamOutcome,
    failed_stream,
)


class BaseHTTPProvider(AIProvider):
    """Base class for adapters that talk to a vendor over HTTP + JSON."""

    name: ClassVar[str] = ""
    capabilities: ClassVar[CapabilityDescriptor] = CapabilityDescriptor()
    default_base_url: ClassVar[str] = ""
    default_model_name: ClassVar[str] = ""
    default_timeout_ms: ClassVar[int] = DEFAULT_TIMEOUT_MS
    probe_path: ClassVar[str] = MODELS_PATH
    stream_sentinel: ClassVar[Optional[str]] = DONE_SENTINEL

    def __init__(
        self,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        health: Optional[ProviderHealth] = None,
    ) -> None:
        self._transport = transport
        self.health = health or ProviderHealth(self.name)
        self._config: Optional[ProviderConfig] = None
        self._client: Optional[httpx.Client] = None
        self._model: str = self.default_model_name
        self._lock = threading.Lock()
        self._logger = get_logger(f"providers.{self.name}")

    # ------------------------------------------------------------ identity
    @property
    def provider_name(self) -> str:
        return self.name

    def default_model(self) -> Optional[str]:
        return self._model

    def is_healthy(self) -> bool:
        return self.health.healthy

    @property
    def config(self) -> Optional[ProviderConfig]:
        return self._config

    # ------------------------------------------------------- subclass hooks
    def auth_headers(self, config: ProviderConfig) -> Dict[str, str]:
        return {"Authorization": f"Bearer {config.api_key}"}

    def auth_params(self, config: ProviderConfig) -> Optional[Dict[str, str]]:
        return None

    def chat_path(self, model: str, *, stream: bool) -> str:  # pragma: no cover - abstract
        raise NotImplementedError

    def stream_params(self) -> Optional[Dict[str, str]]:
        return None

    def build_payload(self, request: ChatRequest, model: str, *, stream: bool) -> Dict[str, Any]:  # pragma: no cover
        raise NotImplementedError

    def parse_response(self, data: Dict[str, Any], model: str, response_id: str) -> ChatResponse:  # pragma: no cover
        raise NotImplementedError

    def translate_chunk(self, payload: Dict[str, Any]) -> Optional[ChunkTranslation]:  # pragma: no cover
        raise NotImplementedError

    # ------------------------------------------------------------ lifecycle
    def initialize(self, config: ProviderConfig) -> None:
        """Open the client and probe the vendor's model listing.

        Calling again with the same config object after a successful
        initialization is a no-op.
        """
        with self._lock:
            if config is self._config and self._client is not None and self.health.usable:
                return
            ctx = LogContext(provider=self.name, model=config.default_model or self.default_model_name)
            log_event(
                self._logger,
                "provider.init.start",
                ctx,
                api_base=config.api_base or self.default_base_url,
                headers=redact_headers(self._client_headers(config)),
            )
            if not config.api_key:
                err = AuthError(
                    message=MISSING_API_KEY_MESSAGE.format(provider=self.name),
                    code=ErrorCode.MISSING_API_KEY,
                    provider=self.name,
                )
                self._fail_init(ctx, err)
                raise err
            client = self._build_client(config)
            try:
                self._probe(client)
            except Exception as exc:  # noqa: BLE001 - classified and re-raised
                client.close()
                err = to_ai_error(exc, provider=self.name)
                self._fail_init(ctx, err)
                if err is exc:
                    raise
                raise err from exc
            previous, self._client = self._client, client
            self._config = config
            self._model = config.default_model or self.default_model_name
            self.health.mark_healthy()
            if previous is not None:
                previous.close()
            log_event(self._logger, "provider.init.ok", ctx)

    def _client_headers(self, config: ProviderConfig) -> Dict[str, str]:
        return {"Content-Type": "application/json", **self.auth_headers(config), **config.headers}

    def _build_client(self, config: ProviderConfig) -> httpx.Client:
        return build_http_client(
            base_url=config.api_base or self.default_base_url,
            timeout_ms=config.timeout_ms or self.default_timeout_ms,
            headers=self._client_headers(config),
            params=self.auth_params(config),
            transport=self._transport,
        )

    def _probe(self, client: httpx.Client) -> None:
        response = client.get(self.probe_path)
        raise_for_vendor_status(response, provider=self.name)

    def _fail_init(self, ctx: LogContext, err: AIError) -> None:
        self.health.mark_unreachable(err)
        log_event(
            self._logger,
            "provider.init.error",
            ctx,
            level=logging.WARNING,
            error_code=err.code.value,
            http_status=err.http_status,
            message=err.message,
        )

    def health_check(self) -> HealthSnapshot:
        """Re-run the model-listing probe on the open client.

        Without a client (never initialized, or closed) the recorded state is
        returned unchanged. Recovering an ``UNREACHABLE`` provider takes a
        new :meth:`initialize`.
        """
        client = self._client
        if client is None:
            return self.health.snapshot()
        ctx = LogContext(provider=self.name, model=self._model)
        t0 = time.perf_counter()
        try:
            self._probe(client)
        except Exception as exc:  # noqa: BLE001 - recorded on the health tracker
            err = to_ai_error(exc, provider=self.name)
            state = self.health.record_failure(err)
            log_event(
                self._logger,
                "provider.health_check.failed",
                ctx,
                level=logging.WARNING,
                state=state.value,
                error_code=err.code.value,
                http_status=err.http_status,
                message=err.message,
            )
        else:
            state = self.health.record_success()
            log_event(
                self._logger,
                "provider.health_check.ok",
                ctx,
                state=state.value,
                latency_ms=round((time.perf_counter() - t0) * 1000.0, 3),
            )
        return self.health.snapshot()

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()

    # ----------------------------------------------------------------- chat
    def _require_client(self) -> httpx.Client:
        client = self._client
        if client is None:
            raise ProviderUnavailableError(
                message=NOT_INITIALIZED_MESSAGE.format(provider=self.name),
                code=ErrorCode.NOT_INITIALIZED,
                provider=self.name,
            )
        return client

    def _resolve_model(self, request: ChatRequest) -> str:
        return request.model or self._model or self.default_model_name

    def chat(self, request: ChatRequest) -> ChatResponse:
        """Single blocking round trip; retries belong to the caller."""
        model = self._resolve_model(request)
        client = self._require_client()
        request.validate()
        response_id = new_response_id(self.name)
        ctx = LogContext(provider=self.name, model=model, request_id=response_id)
        log_event(self._logger, "chat.start", ctx, messages=len(request.messages))
        t0 = time.perf_counter()
        try:
            http_response = client.post(self.chat_path(model, stream=False), json=self.build_payload(request, model, stream=False))
            raise_for_vendor_status(http_response, provider=self.name, model=model)
            result = self.parse_response(self._decode_json(http_response, model), model, response_id)
        except Exception as exc:  # noqa: BLE001 - every failure leaves as AIError
            err = to_ai_error(exc, provider=self.name, model=model)
            log_event(
                self._logger,
                "chat.error",
                ctx,
                level=logging.WARNING,
                error_code=err.code.value,
                http_status=err.http_status,
                message=err.message,
            )
            if err is exc:
                raise
            raise err from exc
        normalized_log_event(
            self._logger,
            "chat.end",
            ctx,
            phase="finalize",
            attempt=None,
            emitted=True,
            tokens=result.usage,
            latency_ms=round((time.perf_counter() - t0) * 1000.0, 3),
            finish_reason=result.finish_reason,
        )
        return result

    def _decode_json(self, response: httpx.Response, model: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise VendorError(
                message="vendor returned a non-JSON body",
                provider=self.name,
                model=model,
                http_status=response.status_code,
                raw=response.text[:500],
            ) from exc
        if not isinstance(data, dict):
            raise VendorError(message="vendor returned an unexpected body", provider=self.name, model=model, raw=data)
        return data

    # ------------------------------------------------------------ streaming
    def stream_chat(
        self,
        request: ChatRequest,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        on_complete: Optional[Callable[[StreamOutcome], None]] = None,
    ) -> ChatStream:
        """Return a lazy :class:`ChatStream`; nothing is sent before the first ``next``.

        Raises:
            ValidationError: the request is malformed (raised eagerly).
        """
        model = self._resolve_model(request)
        response_id = new_response_id(self.name)
        request.validate()
        client = self._client
        if client is None:
            err = ProviderUnavailableError(
                message=NOT_INITIALIZED_MESSAGE.format(provider=self.name),
                code=ErrorCode.NOT_INITIALIZED,
                provider=self.name,
                model=model,
            )
            chunks = failed_stream(
                provider=self.name, model=model, response_id=response_id, error=err, on_complete=on_complete
            )
            return ChatStream(chunks, provider=self.name, model=model, response_id=response_id)

        payload = self.build_payload(request, model, stream=True)
        path = self.chat_path(model, stream=True)
        params = self.stream_params()

        def opener():
            return open_text_stream(
                client, "POST", path, provider=self.name, model=model, json=payload, params=params
            )

        normalizer = StreamNormalizer(
            provider=self.name,
            model=model,
            response_id=response_id,
            opener=opener,
            translator=self.translate_chunk,
            retry_policy=retry_policy,
            sentinel=self.stream_sentinel,
            on_complete=on_complete,
            logger=self._logger,
        )
        return ChatStream(normalizer.run(), provider=self.name, model=model, response_id=response_id)


__all__ = ["BaseHTTPProvider"]
