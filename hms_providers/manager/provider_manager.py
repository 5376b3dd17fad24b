"""ProviderManager: registry, health tracking, routing and failover.

Lifecycle
---------
1. Construction registers one adapter per configured provider (configuration
   order is also the failover order). Nothing touches the network.
2. :meth:`ProviderManager.initialize` initializes every adapter concurrently.
   Individual failures are recorded, never propagated; zero healthy
   providers raises :class:`NoHealthyProviderError`.
3. :meth:`chat` / :meth:`stream_chat` dispatch to the current (or named)
   provider under that provider's retry policy and record the outcome.
4. :meth:`check_health` re-probes providers on demand; once initialized, a
   background thread runs it every ``health_check_interval_ms``. Re-probing
   is the only way back from ``UNREACHABLE`` short of a new manager.

Health state machine (per provider, see :class:`ProviderHealth`)::

    UNINITIALIZED --init ok--> HEALTHY --N transient failures--> DEGRADED
    DEGRADED --one success--> HEALTHY
    any --init failure / auth rejection--> UNREACHABLE
    UNREACHABLE --re-initialized by check_health--> HEALTHY

Failover
--------
When the caller did not name a provider and failover is enabled, a call that
fails with a transport, rate-limit, auth or availability error moves on to the
next HEALTHY provider in configuration order. Streams only fail over while
nothing has been handed to the consumer. Validation and vendor business
errors never fail over.

Thread safety
-------------
Counters and health use their own locks; ``switch_provider`` and pointer
updates are serialized by ``_switch_lock``. The provider used by a call is
captured at dispatch, so a concurrent switch never affects an in-flight call.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

import httpx

from ..base.errors import (
    AIError,
    ErrorCode,
    NoHealthyProviderError,
    ProviderUnavailableError,
    TRANSIENT_CODES,
    UnknownProviderError,
)
from ..base.factory import ProviderFactory
from ..base.interfaces import AIProvider
from ..base.logging import LogContext, get_logger, log_event
from ..base.metrics import HealthState, ProviderHealth, ProviderStats
from ..base.models import ChatRequest, ChatResponse, StreamResponse, TokenUsage, new_response_id
from ..base.resilience.retry import RetryConfig, RetryPolicy
from ..base.streaming import ChatStream, StreamOutcome, failed_stream
from ..config import load_manager_settings, load_provider_configs
from ..config.provider_config import ProviderConfig
from ..config.settings import ManagerSettings
from .provider_record import ProviderRecord
from .provider_status import ProviderStatus

_FAILOVER_CODES = frozenset(TRANSIENT_CODES) | {
    ErrorCode.AUTH,
    ErrorCode.MISSING_API_KEY,
    ErrorCode.NOT_INITIALIZED,
}

_MAX_INIT_WORKERS = 8


def should_failover(error: AIError) -> bool:
    """Whether ``error`` justifies trying another provider."""
    return error.code in _FAILOVER_CODES


class ProviderManager:
    """Owns every adapter and routes chat calls between them."""

    def __init__(
        self,
        configs: Optional[Mapping[str, ProviderConfig]] = None,
        *,
        settings: Optional[ManagerSettings] = None,
        providers: Optional[Mapping[str, AIProvider]] = None,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
        rng: Optional[Callable[[], float]] = None,
    ) -> None:
        """Register adapters without initializing them.

        Args:
            configs: Ordered ``{name: ProviderConfig}``; loaded from the
                environment/config file when omitted.
            settings: Manager tuning; loaded when omitted.
            providers: Prebuilt adapters keyed by name (tests, custom
                adapters). Names without a config get an empty one.
            transport: ``httpx`` transport handed to factory-built adapters.
            sleep / rng: Injected into every retry policy (tests).
        """
        self.settings = settings or load_manager_settings()
        prebuilt = {k.lower(): v for k, v in (providers or {}).items()}
        if configs is None:
            configs = {} if prebuilt else load_provider_configs()
        configs = {k.lower(): v for k, v in configs.items()}
        self._sleep = sleep
        self._rng = rng
        self._logger = get_logger("manager")
        self._records: Dict[str, ProviderRecord] = {}
        names = list(dict.fromkeys([*configs, *prebuilt]))
        for name in names:
            config = configs.get(name) or ProviderConfig()
            adapter = prebuilt.get(name)
            if adapter is None:
                health = ProviderHealth(name, degraded_threshold=self.settings.degraded_threshold)
                adapter = ProviderFactory.create(name, transport=transport, health=health)
            self._records[name] = ProviderRecord(
                name=name,
                provider=adapter,
                config=config,
                retry_policy=self._build_retry_policy(config),
                stats=ProviderStats(name, ema_alpha=self.settings.latency_ema_alpha),
            )
        self._current: Optional[str] = None
        self._initialized = False
        self._init_lock = threading.Lock()
        self._switch_lock = threading.Lock()
        self._monitor_lock = threading.Lock()
        self._monitor_stop: Optional[threading.Event] = None
        self._monitor_thread: Optional[threading.Thread] = None

    def _build_retry_policy(self, config: ProviderConfig) -> RetryPolicy:
        attempts = config.max_retries or self.settings.max_attempts
        return RetryPolicy(
            RetryConfig(max_attempts=attempts, backoff=self.settings.backoff()),
            sleep=self._sleep,
            rng=self._rng,
        )

    # ------------------------------------------------------------ lifecycle
    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Initialize all registered providers concurrently.

        Idempotent once it has succeeded.

        Raises:
            NoHealthyProviderError: no provider reached ``HEALTHY``.
        """
        with self._init_lock:
            if self._initialized:
                return
            records = list(self._records.values())
            if records:
                workers = min(len(records), _MAX_INIT_WORKERS)
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="provider-init") as pool:
                    list(pool.map(self._initialize_one, records))
            healthy = [r.name for r in records if r.health.healthy]
            if not healthy:
                failures = {r.name: r.health.last_error.to_dict() for r in records if r.health.last_error}
                log_event(self._logger, "manager.init.failed", None, level=logging.ERROR, failures=failures)
                raise NoHealthyProviderError(
                    message="no AI provider could be initialized" if records else "no AI provider is configured",
                    raw=failures,
                )
            default = self.settings.default_provider
            with self._switch_lock:
                self._current = default if default in healthy else healthy[0]
            self._initialized = True
            log_event(
                self._logger,
                "manager.initialized",
                None,
                current=self._current,
                healthy=healthy,
                unhealthy=[r.name for r in records if not r.health.healthy],
            )
        self.start_health_checks()

    def _initialize_one(self, record: ProviderRecord) -> None:
        ctx = LogContext(provider=record.name)
        try:
            record.provider.initialize(record.config)
        except Exception as exc:  # noqa: BLE001 - one provider never aborts the others
            record.health.mark_unreachable(exc)
            err = record.health.last_error
            log_event(
                self._logger,
                "manager.provider.init_failed",
                ctx,
                level=logging.WARNING,
                error_code=err.code.value if err else None,
                message=err.message if err else str(exc),
            )
            return
        log_event(self._logger, "manager.provider.ready", ctx, state=record.health.state.value)

    def close(self) -> None:
        """Close every adapter; the manager must be re-initialized before reuse."""
        self.stop_health_checks()
        with self._init_lock:
            for record in self._records.values():
                try:
                    record.provider.close()
                except Exception as exc:  # noqa: BLE001 - keep closing the rest
                    log_event(self._logger, "manager.close.error", LogContext(provider=record.name), level=logging.WARNING, message=str(exc))
            self._initialized = False

    # --------------------------------------------------------------- health
    def check_health(self, name: Optional[str] = None) -> List[ProviderStatus]:
        """Actively re-check ``name`` (or every provider) and return their status.

        ``UNREACHABLE`` and ``UNINITIALIZED`` providers are initialized again
        with their config; the others run the adapter's ``health_check``.
        Providers rejected for a missing key are skipped since their config
        cannot have changed. When the current provider ends up unusable the
        pointer moves to the first HEALTHY one. Never raises for provider
        failures.

        Raises:
            UnknownProviderError: ``name`` is not registered.
        """
        records = [self._record(name)] if name is not None else list(self._records.values())
        for record in records:
            state = record.health.state
            if state in (HealthState.UNREACHABLE, HealthState.UNINITIALIZED):
                last = record.health.last_error
                if last is not None and last.code is ErrorCode.MISSING_API_KEY:
                    continue
                self._initialize_one(record)
            else:
                try:
                    record.provider.health_check()
                except Exception as exc:  # noqa: BLE001 - adapters should not raise here
                    record.health.record_failure(exc)
            log_event(
                self._logger,
                "manager.health_check",
                LogContext(provider=record.name),
                previous=state.value,
                state=record.health.state.value,
            )
        self._repoint_if_unusable()
        current = self._current
        return [r.status(current=(r.name == current)) for r in records]

    def _repoint_if_unusable(self) -> None:
        if not self._initialized:
            return
        with self._switch_lock:
            current = self._current
            if current is not None and self._records[current].health.usable:
                return
            target = self._next_healthy([])
            if target is None:
                return
            self._current = target.name
        log_event(self._logger, "manager.switch", None, previous=current, current=target.name, reason="health_check")

    def start_health_checks(self, interval_ms: Optional[int] = None) -> bool:
        """Run :meth:`check_health` every ``interval_ms`` on a daemon thread.

        Returns False when the interval is not positive. Calling it while
        the loop is already running is a no-op.
        """
        interval = self.settings.health_check_interval_ms if interval_ms is None else interval_ms
        if interval <= 0:
            return False
        with self._monitor_lock:
            if self._monitor_thread is not None and self._monitor_thread.is_alive():
                return True
            stop = threading.Event()
            thread = threading.Thread(
                target=self._health_loop,
                args=(stop, interval / 1000.0),
                name="provider-health",
                daemon=True,
            )
            self._monitor_stop, self._monitor_thread = stop, thread
            thread.start()
        log_event(self._logger, "manager.health_checks.started", None, interval_ms=interval)
        return True

    def stop_health_checks(self) -> None:
        with self._monitor_lock:
            stop, thread = self._monitor_stop, self._monitor_thread
            self._monitor_stop = self._monitor_thread = None
        if stop is None:
            return
        stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)

    def _health_loop(self, stop: threading.Event, interval_s: float) -> None:
        while not stop.wait(interval_s):
            try:
                self.check_health()
            except Exception as exc:  # noqa: BLE001 - the loop outlives one bad round
                log_event(self._logger, "manager.health_check.error", None, level=logging.WARNING, message=str(exc))

    # ------------------------------------------------------------- registry
    def get_providers(self) -> List[ProviderStatus]:
        current = self._current
        return [r.status(current=(r.name == current)) for r in self._records.values()]

    def get_current_provider(self) -> Optional[str]:
        return self._current

    def get_provider(self, name: str) -> AIProvider:
        return self._record(name).provider

    def _record(self, name: str) -> ProviderRecord:
        key = (name or "").lower().strip()
        record = self._records.get(key)
        if record is None:
            raise UnknownProviderError(message=f"provider '{name}' is not registered", provider=key or None)
        return record

    def switch_provider(self, name: str) -> ProviderStatus:
        """Point subsequent calls at ``name``.

        Raises:
            UnknownProviderError: ``name`` is not registered.
            AIError: the provider is ``UNREACHABLE`` (its recorded error) or
                was never initialized.
        """
        record = self._record(name)
        with self._switch_lock:
            state = record.health.state
            if state is HealthState.UNREACHABLE:
                raise record.health.last_error or ProviderUnavailableError(
                    message=f"provider '{record.name}' is unreachable", provider=record.name
                )
            if state is HealthState.UNINITIALIZED:
                raise ProviderUnavailableError(
                    message=f"provider '{record.name}' is not initialized",
                    code=ErrorCode.NOT_INITIALIZED,
                    provider=record.name,
                )
            previous, self._current = self._current, record.name
        log_event(self._logger, "manager.switch", None, previous=previous, current=record.name, state=state.value)
        return record.status(current=True)

    # ---------------------------------------------------------------- stats
    def record_request(
        self,
        name: str,
        success: bool,
        tokens_used: Any = 0,
        latency_ms: Any = 0.0,
        cost: Any = 0.0,
    ) -> None:
        """Update usage counters for ``name``. Never raises."""
        record = self._records.get((name or "").lower().strip()) if isinstance(name, str) else None
        if record is None:
            log_event(self._logger, "manager.stats.unknown_provider", None, level=logging.DEBUG, provider_name=repr(name))
            return
        record.stats.record_request(success, tokens_used, latency_ms, cost)

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        """Per-provider usage counters and health, keyed by provider name."""
        out: Dict[str, Dict[str, Any]] = {}
        for name, record in self._records.items():
            entry = record.stats.snapshot().to_dict()
            entry["health"] = record.health.snapshot().to_dict()
            out[name] = entry
        return out

    # ------------------------------------------------------------- dispatch
    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ProviderUnavailableError(
                message="provider manager is not initialized",
                code=ErrorCode.NOT_INITIALIZED,
            )

    def _select(self, provider: Optional[str]) -> ProviderRecord:
        if provider is not None:
            return self._record(provider)
        current = self._current
        if current is None:  # pragma: no cover - initialize always sets it
            raise ProviderUnavailableError(message="no current provider", code=ErrorCode.NOT_INITIALIZED)
        return self._records[current]

    def _unusable_error(self, record: ProviderRecord) -> AIError:
        return record.health.last_error or ProviderUnavailableError(
            message=f"provider '{record.name}' is not available", provider=record.name
        )

    def _next_healthy(self, tried: List[str]) -> Optional[ProviderRecord]:
        for record in self._records.values():
            if record.name not in tried and record.health.healthy:
                return record
        return None

    def _failover_target(self, explicit: bool, error: AIError, tried: List[str]) -> Optional[ProviderRecord]:
        if explicit or not self.settings.enable_failover or not should_failover(error):
            return None
        return self._next_healthy(tried)

    def _log_failover(self, source: ProviderRecord, target: ProviderRecord, error: AIError) -> None:
        log_event(
            self._logger,
            "manager.failover",
            None,
            level=logging.WARNING,
            source=source.name,
            target=target.name,
            error_code=error.code.value,
            message=error.message,
        )

    def _adopt(self, record: ProviderRecord) -> None:
        """Move the pointer to ``record`` when the current provider is no longer HEALTHY."""
        with self._switch_lock:
            current = self._current
            if current == record.name or current is None:
                return
            if self._records[current].health.healthy:
                return
            self._current = record.name
        log_event(self._logger, "manager.switch", None, previous=current, current=record.name, reason="failover")

    def _record_outcome(
        self,
        record: ProviderRecord,
        *,
        success: bool,
        tokens: int,
        latency_ms: float,
        cost: float = 0.0,
        error: Optional[AIError] = None,
    ) -> None:
        record.stats.record_request(success, tokens, latency_ms, cost)
        if error is not None:
            record.health.record_failure(error)
        elif success:
            record.health.record_success()

    def _cost_of(self, record: ProviderRecord, usage: Optional[TokenUsage], model: str) -> float:
        try:
            return record.provider.estimate_cost(usage, model)
        except Exception as exc:  # noqa: BLE001 - accounting never fails a call
            log_event(
                self._logger,
                "manager.stats.cost_error",
                LogContext(provider=record.name, model=model),
                level=logging.WARNING,
                message=str(exc),
            )
            return 0.0

    # ----------------------------------------------------------------- chat
    def chat(self, request: ChatRequest, *, provider: Optional[str] = None) -> ChatResponse:
        """Blocking chat through the current (or named) provider.

        Raises:
            ValidationError: malformed request (no provider is called).
            UnknownProviderError: ``provider`` is not registered.
            AIError: the final classified failure.
        """
        request.validate()
        self._require_initialized()
        explicit = provider is not None
        record = self._select(provider)
        tried: List[str] = []
        while True:
            tried.append(record.name)
            try:
                return self._chat_once(record, request)
            except AIError as err:
                target = self._failover_target(explicit, err, tried)
                if target is None:
                    raise
                self._log_failover(record, target, err)
                record = target

    def _chat_once(self, record: ProviderRecord, request: ChatRequest) -> ChatResponse:
        if not record.health.usable:
            raise self._unusable_error(record)
        t0 = ProviderStats.monotonic_ms()
        try:
            response = record.retry_policy.call(
                lambda: record.provider.chat(request),
                provider=record.name,
                model=request.model,
                phase="chat",
            )
        except AIError as err:
            self._record_outcome(record, success=False, tokens=0, latency_ms=ProviderStats.monotonic_ms() - t0, error=err)
            raise
        tokens = response.usage.total_tokens if response.usage else 0
        self._record_outcome(
            record,
            success=True,
            tokens=tokens,
            latency_ms=ProviderStats.monotonic_ms() - t0,
            cost=self._cost_of(record, response.usage, response.model or request.model or ""),
        )
        self._adopt(record)
        return response

    # ------------------------------------------------------------ streaming
    def stream_chat(self, request: ChatRequest, *, provider: Optional[str] = None) -> ChatStream:
        """Streaming chat through the current (or named) provider.

        The request is validated eagerly. The returned stream is lazy: the
        provider is chosen now, the connection opens on the first ``next``.
        Failures surface as one terminal error chunk.
        """
        request.validate()
        self._require_initialized()
        explicit = provider is not None
        record = self._select(provider)
        chunks = self._stream_attempts(record, request, explicit)
        return ChatStream(
            chunks,
            provider=record.name,
            model=request.model or record.provider.default_model() or "",
            response_id=new_response_id(record.name),
        )

    def _open_stream(self, record: ProviderRecord, request: ChatRequest) -> ChatStream:
        model = request.model or record.provider.default_model() or ""
        if not record.health.usable:
            response_id = new_response_id(record.name)
            chunks = failed_stream(
                provider=record.name, model=model, response_id=response_id, error=self._unusable_error(record)
            )
            return ChatStream(chunks, provider=record.name, model=model, response_id=response_id)

        def on_complete(outcome: StreamOutcome) -> None:
            self._record_outcome(
                record,
                success=outcome.success,
                tokens=outcome.tokens,
                latency_ms=outcome.latency_ms,
                cost=self._cost_of(record, outcome.usage, model) if outcome.usage else 0.0,
                error=outcome.error,
            )
            if outcome.success:
                self._adopt(record)

        return record.provider.stream_chat(request, retry_policy=record.retry_policy, on_complete=on_complete)

    def _stream_attempts(self, record: ProviderRecord, request: ChatRequest, explicit: bool) -> Iterator[StreamResponse]:
        tried: List[str] = []
        while True:
            tried.append(record.name)
            stream = self._open_stream(record, request)
            try:
                first = next(stream, None)
                if first is not None and first.done and first.error is not None:
                    target = self._failover_target(explicit, first.error, tried)
                    if target is not None:
                        self._log_failover(record, target, first.error)
                        record = target
                        continue
                if first is None:
                    return
                yield first
                yield from stream
                return
            finally:
                stream.close()


__all__ = ["ProviderManager", "should_failover"]
