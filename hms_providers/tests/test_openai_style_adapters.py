"""DeepSeek, Kimi and OpenAI adapters against a scripted Chat Completions vendor."""

from __future__ import annotations

import httpx
import pytest

from hms_providers.base.errors import AuthError, ErrorCode, ProviderUnavailableError, ValidationError, VendorError
from hms_providers.base.metrics import HealthState, ProviderHealth
from hms_providers.base.models import TokenUsage, ToolSpec
from hms_providers.config.provider_config import ProviderConfig
from hms_providers.deepseek import DeepseekProvider
from hms_providers.kimi import KimiProvider
from hms_providers.openai import OpenAIProvider

from .helpers import (
    VendorStub,
    json_reply,
    keyed_config,
    openai_completion,
    openai_delta,
    sse_body,
    sse_reply,
    user_request,
)

ADAPTERS = [DeepseekProvider, KimiProvider, OpenAIProvider]


def _ready(cls, stub: VendorStub, **config_kwargs):
    provider = cls(transport=stub.transport)
    provider.initialize(keyed_config(**config_kwargs))
    return provider


# ---------------------------------------------------------------- lifecycle


@pytest.mark.parametrize("cls", ADAPTERS)
def test_initialize_probes_models_and_marks_healthy(cls):
    stub = VendorStub()
    provider = _ready(cls, stub)
    assert provider.health.state is HealthState.HEALTHY
    probe = stub.requests[0]
    assert probe.method == "GET"
    assert probe.url.path.endswith("/models")
    assert probe.headers["Authorization"] == "Bearer sk-test-0123456789"
    assert provider.default_model() == cls.default_model_name


@pytest.mark.parametrize("cls", ADAPTERS)
def test_missing_key_fails_without_network(cls):
    stub = VendorStub()
    provider = cls(transport=stub.transport)
    with pytest.raises(AuthError) as exc:
        provider.initialize(ProviderConfig())
    assert exc.value.code is ErrorCode.MISSING_API_KEY
    assert exc.value.message == f"{cls.name} API key is not configured"
    assert stub.requests == []
    assert provider.health.state is HealthState.UNREACHABLE


def test_rejected_probe_marks_unreachable():
    stub = VendorStub(probe=json_reply({"error": {"message": "Incorrect API key", "code": "invalid_api_key"}}, 401))
    provider = DeepseekProvider(transport=stub.transport)
    with pytest.raises(AuthError) as exc:
        provider.initialize(keyed_config())
    assert exc.value.http_status == 401
    assert provider.health.state is HealthState.UNREACHABLE
    assert provider.health.last_error is exc.value
    assert not provider.is_healthy()


def test_unreachable_vendor_on_probe():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = KimiProvider(transport=httpx.MockTransport(refuse))
    with pytest.raises(Exception) as exc:
        provider.initialize(keyed_config())
    assert exc.value.code is ErrorCode.TRANSPORT
    assert provider.health.state is HealthState.UNREACHABLE


def test_reinitialize_with_same_config_is_noop():
    stub = VendorStub()
    provider = DeepseekProvider(transport=stub.transport)
    config = keyed_config()
    provider.initialize(config)
    provider.initialize(config)
    assert len(stub.requests) == 1


def test_custom_base_url_and_model():
    stub = VendorStub().queue(json_reply(openai_completion("ok")))
    provider = _ready(DeepseekProvider, stub, api_base="https://gateway.hospital.local/deepseek", default_model="deepseek-coder")
    provider.chat(user_request())
    assert str(stub.posts[0].url) == "https://gateway.hospital.local/deepseek/chat/completions"
    assert stub.last_payload()["model"] == "deepseek-coder"


def test_openai_sends_organization_header():
    stub = VendorStub()
    _ready(OpenAIProvider, stub, organization="org-hms")
    assert stub.requests[0].headers["OpenAI-Organization"] == "org-hms"


# -------------------------------------------------------------------- chat


@pytest.mark.parametrize("cls", ADAPTERS)
def test_chat_before_initialize_is_rejected(cls):
    with pytest.raises(ProviderUnavailableError) as exc:
        cls().chat(user_request())
    assert exc.value.code is ErrorCode.NOT_INITIALIZED


def test_chat_payload_defaults_and_system_prompt():
    stub = VendorStub().queue(json_reply(openai_completion("Rest and fluids.")))
    provider = _ready(DeepseekProvider, stub)
    response = provider.chat(user_request("I have a fever", system_prompt="You are a triage nurse."))
    payload = stub.last_payload()
    assert payload["model"] == "deepseek-chat"
    assert payload["messages"] == [
        {"role": "system", "content": "You are a triage nurse."},
        {"role": "user", "content": "I have a fever"},
    ]
    assert (payload["temperature"], payload["max_tokens"], payload["top_p"]) == (0.7, 2048, 0.95)
    assert payload["stream"] is False
    assert "frequency_penalty" not in payload
    assert response.text == "Rest and fluids."
    assert response.provider == "deepseek"
    assert response.model == "vendor-model"
    assert response.usage.total_tokens == 12
    assert response.finish_reason == "stop"
    assert response.id.startswith("deepseek-")


def test_chat_passes_sampling_overrides():
    stub = VendorStub().queue(json_reply(openai_completion("ok")))
    provider = _ready(OpenAIProvider, stub)
    provider.chat(user_request(temperature=0.0, max_tokens=64, top_p=0.5, presence_penalty=1.0))
    payload = stub.last_payload()
    assert (payload["temperature"], payload["max_tokens"], payload["top_p"]) == (0.0, 64, 0.5)
    assert payload["presence_penalty"] == 1.0


def test_tools_sent_only_when_supported():
    tool = ToolSpec(name="lookup_drug", description="Find a drug monograph")
    stub = VendorStub().queue(json_reply(openai_completion("ok")), json_reply(openai_completion("ok")))
    _ready(OpenAIProvider, stub).chat(user_request(tools=[tool]))
    assert stub.last_payload()["tools"] == [{"type": "function", "function": tool.to_dict()}]
    _ready(KimiProvider, stub).chat(user_request(tools=[tool]))
    assert "tools" not in stub.last_payload()


def test_function_call_is_surfaced():
    body = openai_completion("")
    body["choices"][0]["message"]["tool_calls"] = [
        {"id": "call_1", "type": "function", "function": {"name": "lookup_drug", "arguments": '{"q": "aspirin"}'}}
    ]
    stub = VendorStub().queue(json_reply(body))
    response = _ready(OpenAIProvider, stub).chat(user_request())
    assert response.message.function_call == {"name": "lookup_drug", "arguments": '{"q": "aspirin"}'}


def test_invalid_request_never_reaches_vendor():
    stub = VendorStub()
    provider = _ready(DeepseekProvider, stub)
    with pytest.raises(ValidationError):
        provider.chat(user_request(temperature=3.0))
    assert stub.posts == []


@pytest.mark.parametrize(
    "status,code",
    [(429, ErrorCode.RATE_LIMIT), (500, ErrorCode.SERVER_ERROR), (503, ErrorCode.UNAVAILABLE), (401, ErrorCode.AUTH), (400, ErrorCode.VENDOR)],
)
def test_vendor_status_is_classified(status, code):
    stub = VendorStub().queue(json_reply({"error": {"message": "nope"}}, status))
    provider = _ready(KimiProvider, stub)
    with pytest.raises(Exception) as exc:
        provider.chat(user_request())
    assert exc.value.code is code
    assert exc.value.http_status == status
    assert exc.value.provider == "kimi"
    assert exc.value.message == "nope"


def test_empty_choices_is_vendor_error():
    stub = VendorStub().queue(json_reply({"choices": []}))
    with pytest.raises(VendorError):
        _ready(DeepseekProvider, stub).chat(user_request())


def test_non_json_body_is_vendor_error():
    stub = VendorStub().queue((200, {"text": "<html>gateway</html>"}))
    with pytest.raises(VendorError) as exc:
        _ready(DeepseekProvider, stub).chat(user_request())
    assert "non-JSON" in exc.value.message


# --------------------------------------------------------------- streaming


def test_stream_yields_content_and_terminal_usage():
    body = sse_body(
        [
            openai_delta("Drink "),
            openai_delta("water."),
            openai_delta(finish_reason="stop", usage={"prompt_tokens": 4, "completion_tokens": 2, "total_tokens": 6}),
        ]
    )
    stub = VendorStub().queue(sse_reply(body))
    provider = _ready(DeepseekProvider, stub)
    chunks = list(provider.stream_chat(user_request()))
    assert stub.last_payload()["stream"] is True
    assert [c.content for c in chunks[:-1]] == ["Drink ", "water."]
    assert chunks[-1].done and chunks[-1].error is None
    assert chunks[-1].usage.total_tokens == 6
    assert len({c.id for c in chunks}) == 1


def test_kimi_stream_usage_inside_choice():
    final = {"choices": [{"index": 0, "delta": {}, "finish_reason": "stop", "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}}]}
    stub = VendorStub().queue(sse_reply(sse_body([openai_delta("hi"), final])))
    chunks = list(_ready(KimiProvider, stub).stream_chat(user_request()))
    assert chunks[-1].usage.total_tokens == 2
    assert chunks[-1].finish_reason == "stop"


def test_stream_start_failure_is_retried(fast_retry, sleeps):
    stub = VendorStub().queue(
        json_reply({"error": {"message": "overloaded"}}, 503),
        sse_reply(sse_body([openai_delta("ok")])),
    )
    provider = _ready(DeepseekProvider, stub)
    chunks = list(provider.stream_chat(user_request(), retry_policy=fast_retry))
    assert chunks[0].content == "ok"
    assert chunks[-1].error is None
    assert len(stub.posts) == 2
    assert len(sleeps) == 1


def test_stream_without_retry_policy_makes_one_attempt():
    stub = VendorStub().queue(json_reply({"error": {"message": "overloaded"}}, 503))
    chunks = list(_ready(OpenAIProvider, stub).stream_chat(user_request()))
    assert len(chunks) == 1
    assert chunks[0].error.code is ErrorCode.UNAVAILABLE
    assert len(stub.posts) == 1


def test_stream_truncated_body_ends_with_error():
    stub = VendorStub().queue(sse_reply(sse_body([openai_delta("partial")], done=False)))
    chunks = list(_ready(DeepseekProvider, stub).stream_chat(user_request()))
    assert chunks[0].content == "partial"
    assert chunks[-1].error.code is ErrorCode.TRANSPORT


def test_stream_not_initialized_yields_terminal_error():
    outcomes = []
    stream = KimiProvider().stream_chat(user_request(), on_complete=outcomes.append)
    chunks = list(stream)
    assert len(chunks) == 1
    assert chunks[0].error.code is ErrorCode.NOT_INITIALIZED
    assert stream.error is chunks[0].error
    assert outcomes[0].success is False


def test_stream_validates_eagerly():
    stub = VendorStub()
    provider = _ready(DeepseekProvider, stub)
    with pytest.raises(ValidationError):
        provider.stream_chat(user_request(top_p=0))
    assert stub.posts == []


def test_stream_is_lazy_until_first_next():
    stub = VendorStub().queue(sse_reply(sse_body([openai_delta("x")])))
    provider = _ready(DeepseekProvider, stub)
    stream = provider.stream_chat(user_request())
    assert stub.posts == []
    next(stream)
    assert len(stub.posts) == 1
    stream.close()
    assert stream.closed


def test_close_releases_client():
    stub = VendorStub()
    provider = _ready(DeepseekProvider, stub)
    provider.close()
    with pytest.raises(ProviderUnavailableError):
        provider.chat(user_request())


@pytest.mark.parametrize("cls", ADAPTERS)
def test_three_content_chunks_and_sentinel_yield_four_entries(cls):
    body = sse_body([openai_delta("Rest "), openai_delta("and "), openai_delta("hydrate.")])
    stub = VendorStub().queue(sse_reply(body))
    chunks = list(_ready(cls, stub).stream_chat(user_request()))
    assert len(chunks) == 4
    assert [c.done for c in chunks] == [False, False, False, True]
    assert [c.content for c in chunks[:3]] == ["Rest ", "and ", "hydrate."]
    assert chunks[-1].error is None


# ------------------------------------------------------------- health check


def test_health_check_before_initialize_is_local():
    stub = VendorStub()
    snapshot = DeepseekProvider(transport=stub.transport).health_check()
    assert snapshot.state is HealthState.UNINITIALIZED
    assert stub.requests == []


def test_health_check_degrades_and_recovers():
    stub = VendorStub()
    provider = DeepseekProvider(transport=stub.transport, health=ProviderHealth("deepseek", degraded_threshold=1))
    provider.initialize(keyed_config())
    stub.probe = json_reply({"error": {"message": "overloaded"}}, 503)
    assert provider.health_check().state is HealthState.DEGRADED
    stub.probe = json_reply({"data": []})
    snapshot = provider.health_check()
    assert snapshot.state is HealthState.HEALTHY
    assert snapshot.consecutive_failures == 0
    assert [r.method for r in stub.requests] == ["GET", "GET", "GET"]


def test_health_check_rejected_key_marks_unreachable():
    stub = VendorStub()
    provider = _ready(KimiProvider, stub)
    stub.probe = json_reply({"error": {"message": "Invalid Authentication"}}, 401)
    snapshot = provider.health_check()
    assert snapshot.state is HealthState.UNREACHABLE
    assert snapshot.last_error["code"] == ErrorCode.AUTH.value
    assert not provider.is_healthy()


# --------------------------------------------------------------------- cost


def test_openai_cost_uses_model_pricing():
    usage = TokenUsage(prompt_tokens=1000, completion_tokens=2000, total_tokens=3000)
    provider = OpenAIProvider()
    assert provider.estimate_cost(usage, "gpt-4") == pytest.approx(0.03 + 0.12)
    assert provider.estimate_cost(usage, "gpt-4-0613") == pytest.approx(0.03 + 0.12)
    assert provider.estimate_cost(usage, "some-new-model") == pytest.approx(0.0005 + 0.003)
    assert provider.estimate_cost(None, "gpt-4") == 0.0


@pytest.mark.parametrize("cls", [DeepseekProvider, KimiProvider])
def test_unpriced_vendors_report_zero_cost(cls):
    usage = TokenUsage(prompt_tokens=10, completion_tokens=10, total_tokens=20)
    assert cls().estimate_cost(usage, cls.default_model_name) == 0.0


@pytest.mark.parametrize("cls", ADAPTERS)
def test_no_adapter_advertises_embeddings(cls):
    assert cls.capabilities.embedding is False
