"""ProviderManager: initialization, registry, routing, failover and stats."""

from __future__ import annotations

import threading
import time
from typing import List, Optional

import httpx
import pytest

from hms_providers.base.errors import (
    AuthError,
    ErrorCode,
    NoHealthyProviderError,
    ProviderUnavailableError,
    RateLimitError,
    TransportError,
    UnknownProviderError,
    ValidationError,
    VendorError,
)
from hms_providers.base.metrics import HealthState, ProviderHealth
from hms_providers.base.streaming import accumulate_stream
from hms_providers.config.settings import ManagerSettings
from hms_providers.deepseek import DeepseekProvider
from hms_providers.manager import ProviderManager, should_failover
from hms_providers.mock import MockProvider
from hms_providers.openai import OpenAIProvider

from .helpers import VendorStub, json_reply, keyed_config, openai_completion, user_request


def build(*providers: MockProvider, settings: ManagerSettings, sleeps: Optional[List[float]] = None) -> ProviderManager:
    return ProviderManager(
        providers={p.provider_name: p for p in providers},
        settings=settings,
        sleep=(sleeps.append if sleeps is not None else (lambda _s: None)),
        rng=lambda: 0.0,
    )


def ready(*providers: MockProvider, settings: ManagerSettings, sleeps: Optional[List[float]] = None) -> ProviderManager:
    manager = build(*providers, settings=settings, sleeps=sleeps)
    manager.initialize()
    return manager


# ------------------------------------------------------------ initialization


def test_initialize_selects_first_healthy(manager_settings):
    a = MockProvider(name="deepseek", init_error=AuthError(message="bad key"))
    b = MockProvider(name="gemini")
    manager = ready(a, b, settings=manager_settings)
    assert manager.initialized
    assert manager.get_current_provider() == "gemini"
    states = {s.name: s.state for s in manager.get_providers()}
    assert states == {"deepseek": HealthState.UNREACHABLE, "gemini": HealthState.HEALTHY}


def test_default_provider_setting_is_honoured():
    a, b = MockProvider(name="deepseek"), MockProvider(name="kimi")
    manager = ready(a, b, settings=ManagerSettings(default_provider="kimi"))
    assert manager.get_current_provider() == "kimi"


def test_unhealthy_default_falls_back_to_first_healthy():
    a = MockProvider(name="deepseek")
    b = MockProvider(name="kimi", init_error=TransportError(message="down"))
    manager = ready(a, b, settings=ManagerSettings(default_provider="kimi"))
    assert manager.get_current_provider() == "deepseek"


def test_no_healthy_provider(manager_settings):
    a = MockProvider(name="deepseek", init_error=TransportError(message="down"))
    manager = build(a, settings=manager_settings)
    with pytest.raises(NoHealthyProviderError) as exc:
        manager.initialize()
    assert exc.value.code is ErrorCode.NO_HEALTHY_PROVIDER
    assert "deepseek" in exc.value.raw
    assert not manager.initialized


def test_no_configured_provider(manager_settings):
    manager = ProviderManager({}, settings=manager_settings)
    with pytest.raises(NoHealthyProviderError, match="configured"):
        manager.initialize()


def test_initialize_is_idempotent_under_concurrency(manager_settings):
    providers = [MockProvider(name=n) for n in ("deepseek", "gemini", "kimi")]
    manager = build(*providers, settings=manager_settings)
    threads = [threading.Thread(target=manager.initialize) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert [p.init_calls for p in providers] == [1, 1, 1]


def test_factory_adapters_are_built_from_configs(manager_settings):
    stub = VendorStub().queue(json_reply(openai_completion("Drink water.")))
    manager = ProviderManager({"deepseek": keyed_config()}, settings=manager_settings, transport=stub.transport)
    assert isinstance(manager.get_provider("deepseek"), DeepseekProvider)
    manager.initialize()
    assert manager.chat(user_request()).text == "Drink water."
    assert manager.get_provider("deepseek").health.consecutive_failures == 0


def test_calls_before_initialize_are_rejected(manager_settings):
    manager = build(MockProvider(), settings=manager_settings)
    with pytest.raises(ProviderUnavailableError) as exc:
        manager.chat(user_request())
    assert exc.value.code is ErrorCode.NOT_INITIALIZED
    with pytest.raises(ProviderUnavailableError):
        manager.stream_chat(user_request())


def test_close_requires_reinitialization(manager_settings):
    mock = MockProvider()
    manager = ready(mock, settings=manager_settings)
    manager.close()
    assert not manager.initialized
    with pytest.raises(ProviderUnavailableError):
        manager.chat(user_request())


# ----------------------------------------------------------------- registry


def test_switch_provider(manager_settings):
    manager = ready(MockProvider(name="deepseek"), MockProvider(name="kimi"), settings=manager_settings)
    status = manager.switch_provider("KIMI")
    assert status.current and status.name == "kimi"
    assert manager.get_current_provider() == "kimi"
    assert manager.chat(user_request()).provider == "kimi"
    assert [s.current for s in manager.get_providers()] == [False, True]


def test_switch_unknown_provider(manager_settings):
    manager = ready(MockProvider(), settings=manager_settings)
    with pytest.raises(UnknownProviderError):
        manager.switch_provider("claude")
    assert manager.get_current_provider() == "mock"


def test_switch_to_unreachable_raises_recorded_error(manager_settings):
    init_error = AuthError(message="key revoked")
    manager = ready(MockProvider(name="deepseek"), MockProvider(name="kimi", init_error=init_error), settings=manager_settings)
    with pytest.raises(AuthError) as exc:
        manager.switch_provider("kimi")
    assert exc.value is init_error
    assert manager.get_current_provider() == "deepseek"


def test_switch_to_degraded_is_allowed(manager_settings):
    kimi = MockProvider(name="kimi", health=ProviderHealth("kimi", degraded_threshold=1))
    manager = ready(MockProvider(name="deepseek"), kimi, settings=manager_settings)
    kimi.health.record_failure(TransportError(message="flaky"))
    assert kimi.health.state is HealthState.DEGRADED
    assert manager.switch_provider("kimi").state is HealthState.DEGRADED


def test_get_provider_unknown(manager_settings):
    manager = ready(MockProvider(), settings=manager_settings)
    with pytest.raises(UnknownProviderError):
        manager.get_provider("nope")


# --------------------------------------------------------------------- chat


def test_transient_error_is_retried_on_same_provider(manager_settings):
    sleeps: List[float] = []
    mock = MockProvider(errors=[TransportError(message="reset")])
    manager = ready(mock, settings=manager_settings, sleeps=sleeps)
    response = manager.chat(user_request())
    assert response.provider == "mock"
    assert mock.chat_calls == 2
    assert len(sleeps) == 1
    stats = manager.get_stats()["mock"]
    assert (stats["success_count"], stats["failure_count"]) == (1, 0)


def test_failover_to_next_healthy_provider(manager_settings):
    primary = MockProvider(name="deepseek", errors=[RateLimitError(message="slow")] * 2)
    secondary = MockProvider(name="gemini", reply="from gemini")
    manager = ready(primary, secondary, settings=manager_settings)
    response = manager.chat(user_request())
    assert response.provider == "gemini"
    assert response.text == "from gemini"
    stats = manager.get_stats()
    assert stats["deepseek"]["failure_count"] == 1
    assert stats["gemini"]["success_count"] == 1
    # primary is still HEALTHY (below the degraded threshold) so it stays current
    assert manager.get_current_provider() == "deepseek"


def test_failover_adopts_answering_provider_when_current_degrades(manager_settings):
    primary = MockProvider(
        name="deepseek",
        errors=[TransportError(message="down")] * 2,
        health=ProviderHealth("deepseek", degraded_threshold=1),
    )
    secondary = MockProvider(name="gemini")
    manager = ready(primary, secondary, settings=manager_settings)
    assert manager.chat(user_request()).provider == "gemini"
    assert primary.health.state is HealthState.DEGRADED
    assert manager.get_current_provider() == "gemini"


def test_auth_failure_marks_unreachable_and_fails_over(manager_settings):
    primary = MockProvider(name="deepseek", errors=[AuthError(message="revoked")])
    secondary = MockProvider(name="kimi")
    manager = ready(primary, secondary, settings=manager_settings)
    assert manager.chat(user_request()).provider == "kimi"
    assert primary.chat_calls == 1
    assert primary.health.state is HealthState.UNREACHABLE
    assert manager.get_current_provider() == "kimi"


def test_explicit_provider_never_fails_over(manager_settings):
    primary = MockProvider(name="deepseek", errors=[TransportError(message="down")] * 2)
    secondary = MockProvider(name="kimi")
    manager = ready(primary, secondary, settings=manager_settings)
    with pytest.raises(TransportError):
        manager.chat(user_request(), provider="deepseek")
    assert secondary.chat_calls == 0


def test_vendor_error_does_not_fail_over(manager_settings):
    primary = MockProvider(name="deepseek", errors=[VendorError(message="model not found")])
    secondary = MockProvider(name="kimi")
    manager = ready(primary, secondary, settings=manager_settings)
    with pytest.raises(VendorError):
        manager.chat(user_request())
    assert primary.chat_calls == 1
    assert secondary.chat_calls == 0


def test_failover_disabled(manager_settings):
    settings = ManagerSettings(max_attempts=1, enable_failover=False)
    primary = MockProvider(name="deepseek", errors=[TransportError(message="down")])
    secondary = MockProvider(name="kimi")
    manager = ready(primary, secondary, settings=settings)
    with pytest.raises(TransportError):
        manager.chat(user_request())
    assert secondary.chat_calls == 0


def test_all_providers_failing_raises_last_error(manager_settings):
    a = MockProvider(name="deepseek", errors=[TransportError(message="a down")] * 2)
    b = MockProvider(name="kimi", errors=[TransportError(message="b down")] * 2)
    manager = ready(a, b, settings=manager_settings)
    with pytest.raises(TransportError, match="b down"):
        manager.chat(user_request())


def test_invalid_request_reaches_no_provider(manager_settings):
    mock = MockProvider()
    manager = ready(mock, settings=manager_settings)
    with pytest.raises(ValidationError):
        manager.chat(user_request(temperature=9))
    with pytest.raises(ValidationError):
        manager.stream_chat(user_request(top_p=2))
    assert mock.chat_calls == 0 and mock.stream_opens == 0


def test_unreachable_explicit_provider_raises_its_error(manager_settings):
    init_error = TransportError(message="dns failure")
    manager = ready(MockProvider(name="deepseek"), MockProvider(name="kimi", init_error=init_error), settings=manager_settings)
    with pytest.raises(TransportError) as exc:
        manager.chat(user_request(), provider="kimi")
    assert exc.value is init_error


def test_unknown_explicit_provider(manager_settings):
    manager = ready(MockProvider(), settings=manager_settings)
    with pytest.raises(UnknownProviderError):
        manager.chat(user_request(), provider="claude")


@pytest.mark.parametrize(
    "error,expected",
    [
        (TransportError(message="x"), True),
        (RateLimitError(message="x"), True),
        (AuthError(message="x"), True),
        (VendorError(message="x"), False),
        (ValidationError(message="x"), False),
    ],
)
def test_should_failover(error, expected):
    assert should_failover(error) is expected


# ---------------------------------------------------------------- streaming


def test_stream_records_stats_on_completion(manager_settings):
    mock = MockProvider(reply="Ice and rest.")
    manager = ready(mock, settings=manager_settings)
    stream = manager.stream_chat(user_request("sprained ankle"))
    assert manager.get_stats()["mock"]["total_requests"] == 0
    assert accumulate_stream(stream).text == "Ice and rest."
    stats = manager.get_stats()["mock"]
    assert stats["success_count"] == 1
    assert stats["total_tokens"] == 2 + 3


def test_stream_fails_over_before_first_chunk(manager_settings):
    primary = MockProvider(name="deepseek", errors=[TransportError(message="down")] * 2)
    secondary = MockProvider(name="gemini", reply="backup answer")
    manager = ready(primary, secondary, settings=manager_settings)
    stream = manager.stream_chat(user_request())
    chunks = list(stream)
    assert {c.provider for c in chunks} == {"gemini"}
    assert "".join(c.content for c in chunks) == "backup answer"
    assert chunks[-1].error is None
    assert stream.provider == "gemini"
    assert primary.stream_opens == 2
    assert manager.get_stats()["deepseek"]["failure_count"] == 1


def test_stream_is_not_failed_over_after_output(manager_settings):
    primary = MockProvider(name="deepseek", stream_error_after=1)
    secondary = MockProvider(name="gemini")
    manager = ready(primary, secondary, settings=manager_settings)
    chunks = list(manager.stream_chat(user_request()))
    assert chunks[0].provider == "deepseek"
    assert chunks[-1].done and chunks[-1].error.code is ErrorCode.TRANSPORT
    assert secondary.stream_opens == 0
    assert sum(1 for c in chunks if c.done) == 1


def test_explicit_stream_reports_error_chunk(manager_settings):
    primary = MockProvider(name="deepseek", errors=[AuthError(message="revoked")])
    secondary = MockProvider(name="gemini")
    manager = ready(primary, secondary, settings=manager_settings)
    chunks = list(manager.stream_chat(user_request(), provider="deepseek"))
    assert len(chunks) == 1
    assert isinstance(chunks[0].error, AuthError)
    assert secondary.stream_opens == 0


def test_closing_manager_stream_releases_provider_source(manager_settings):
    mock = MockProvider(chunk_size=2)
    manager = ready(mock, settings=manager_settings)
    stream = manager.stream_chat(user_request())
    next(stream)
    stream.close()
    assert mock.sources[0].closed
    stats = manager.get_stats()["mock"]
    assert stats["success_count"] == 1


# -------------------------------------------------------------------- stats


def test_record_request_never_raises(manager_settings):
    manager = ready(MockProvider(), settings=manager_settings)
    manager.record_request("unknown", True, 5, 10.0)
    manager.record_request(None, True)
    manager.record_request("MOCK", True, -3, "slow")
    stats = manager.get_stats()["mock"]
    assert stats["total_requests"] == 1
    assert stats["total_tokens"] == 0


def test_get_stats_shape(manager_settings):
    manager = ready(MockProvider(name="deepseek"), MockProvider(name="kimi"), settings=manager_settings)
    manager.chat(user_request())
    stats = manager.get_stats()
    assert list(stats) == ["deepseek", "kimi"]
    assert stats["deepseek"]["success_rate"] == 1.0
    assert stats["kimi"]["success_rate"] == 0.0
    assert stats["deepseek"]["health"]["state"] == "healthy"
    assert stats["deepseek"]["average_latency_ms"] >= 0.0


def test_concurrent_chats_count_every_request(manager_settings):
    manager = ready(MockProvider(), settings=manager_settings)

    def worker() -> None:
        for _ in range(25):
            manager.chat(user_request())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert manager.get_stats()["mock"]["total_requests"] == 200


def test_stats_accumulate_cost_from_adapter_pricing(manager_settings):
    usage = {"prompt_tokens": 1000, "completion_tokens": 1000, "total_tokens": 2000}
    completion = {**openai_completion("Rest.", usage=usage), "model": "gpt-4-0613"}
    stub = VendorStub().queue(json_reply(completion), json_reply(completion))
    manager = ProviderManager(
        {"openai": keyed_config()},
        settings=manager_settings,
        transport=stub.transport,
    )
    manager.initialize()
    manager.chat(user_request())
    manager.chat(user_request(), provider="openai")
    stats = manager.get_stats()["openai"]
    assert stats["total_tokens"] == 4000
    assert stats["total_cost"] == pytest.approx(2 * (0.03 + 0.06))
    assert isinstance(manager.get_provider("openai"), OpenAIProvider)


def test_mock_calls_cost_nothing(manager_settings):
    manager = ready(MockProvider(), settings=manager_settings)
    manager.chat(user_request())
    manager.record_request("mock", True, 10, 5.0, cost="n/a")
    assert manager.get_stats()["mock"]["total_cost"] == 0.0


# ------------------------------------------------------------ health checks


def test_check_health_reinitializes_unreachable_provider(manager_settings):
    kimi = MockProvider(name="kimi", init_error=TransportError(message="down"))
    manager = ready(MockProvider(name="deepseek"), kimi, settings=manager_settings)
    assert kimi.health.state is HealthState.UNREACHABLE
    kimi.init_error = None
    statuses = manager.check_health("kimi")
    assert [(s.name, s.state) for s in statuses] == [("kimi", HealthState.HEALTHY)]
    assert kimi.init_calls == 2
    assert manager.switch_provider("kimi").healthy


def test_check_health_skips_missing_key(manager_settings):
    missing = AuthError(message="no key", code=ErrorCode.MISSING_API_KEY)
    kimi = MockProvider(name="kimi", init_error=missing)
    manager = ready(MockProvider(name="deepseek"), kimi, settings=manager_settings)
    manager.check_health()
    assert kimi.init_calls == 1
    assert kimi.health.state is HealthState.UNREACHABLE


def test_check_health_recovers_degraded_provider(manager_settings):
    kimi = MockProvider(name="kimi", health=ProviderHealth("kimi", degraded_threshold=1))
    manager = ready(MockProvider(name="deepseek"), kimi, settings=manager_settings)
    kimi.health.record_failure(TransportError(message="flaky"))
    assert kimi.health.state is HealthState.DEGRADED
    manager.check_health()
    assert kimi.health.state is HealthState.HEALTHY
    assert kimi.health_checks == 1


def test_check_health_moves_pointer_off_rejected_provider(manager_settings):
    deepseek = MockProvider(name="deepseek", probe_errors=[AuthError(message="key revoked")])
    manager = ready(deepseek, MockProvider(name="kimi"), settings=manager_settings)
    assert manager.get_current_provider() == "deepseek"
    manager.check_health()
    assert deepseek.health.state is HealthState.UNREACHABLE
    assert manager.get_current_provider() == "kimi"


def test_check_health_unknown_provider(manager_settings):
    manager = ready(MockProvider(), settings=manager_settings)
    with pytest.raises(UnknownProviderError):
        manager.check_health("claude")


def test_background_health_checks_run_until_stopped(manager_settings):
    mock = MockProvider()
    manager = ready(mock, settings=manager_settings)
    assert manager.start_health_checks(interval_ms=0) is False
    assert manager.start_health_checks(interval_ms=10) is True
    deadline = time.monotonic() + 5.0
    while mock.health_checks < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    manager.close()
    assert mock.health_checks >= 2
    seen = mock.health_checks
    time.sleep(0.05)
    assert mock.health_checks == seen


def test_initialize_starts_configured_health_loop():
    mock = MockProvider()
    manager = ready(mock, settings=ManagerSettings(health_check_interval_ms=10))
    deadline = time.monotonic() + 5.0
    while mock.health_checks < 1 and time.monotonic() < deadline:
        time.sleep(0.01)
    manager.close()
    assert mock.health_checks >= 1


# ----------------------------------------------------- credential scenarios


def test_rejected_and_valid_credentials_at_startup(manager_settings):
    def vendor(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.deepseek.com":
            return httpx.Response(401, json={"error": {"message": "Authentication Fails", "type": "authentication_error"}})
        return httpx.Response(200, json={"data": []})

    manager = ProviderManager(
        {"deepseek": keyed_config("sk-revoked-000000"), "kimi": keyed_config()},
        settings=manager_settings,
        transport=httpx.MockTransport(vendor),
    )
    manager.initialize()
    assert manager.get_current_provider() == "kimi"
    statuses = [s.to_dict() for s in manager.get_providers()]
    assert statuses[0]["name"] == "deepseek"
    assert statuses[0]["healthy"] is False
    assert statuses[0]["state"] == "unreachable"
    assert statuses[0]["current"] is False
    assert statuses[1]["name"] == "kimi"
    assert statuses[1]["healthy"] is True
    assert statuses[1]["current"] is True
    with pytest.raises(AuthError) as exc:
        manager.switch_provider("deepseek")
    assert exc.value.http_status == 401
    assert manager.get_current_provider() == "kimi"
