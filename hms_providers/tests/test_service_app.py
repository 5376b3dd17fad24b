"""HTTP service tests against a container backed by mock providers."""

from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from hms_providers.base.errors import AuthError, ProviderUnavailableError, TransportError
from hms_providers.di import build_container
from hms_providers.mock import DEFAULT_MOCK_REPLY, MockProvider
from hms_providers.service.app import API_PREFIX, create_app, get_app

from .helpers import user_request

CHAT = f"{API_PREFIX}/chat"


def client_for(*providers: MockProvider) -> TestClient:
    container = build_container(providers={p.provider_name: p for p in providers})
    return TestClient(create_app(container))


@pytest.fixture()
def client() -> TestClient:
    return client_for(MockProvider(name="deepseek"), MockProvider(name="kimi", reply="kimi says hi"))


def sse_events(text: str) -> List[Any]:
    events: List[Any] = []
    for frame in text.split("\n\n"):
        if not frame.strip():
            continue
        assert frame.startswith("data: ")
        body = frame[len("data: "):]
        events.append(body if body == "[DONE]" else json.loads(body))
    return events


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_get_app_returns_module_app():
    assert get_app().title == "HMS AI Provider Service"


# -------------------------------------------------------------------- chat


def test_chat_with_messages(client):
    response = client.post(CHAT, json={"messages": [{"role": "user", "content": "hello"}]})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == DEFAULT_MOCK_REPLY
    assert body["data"]["provider"] == "deepseek"
    assert body["data"]["message"] == DEFAULT_MOCK_REPLY
    assert body["data"]["usage"]["total_tokens"] > 0


def test_chat_shorthand_builds_medical_system_prompt():
    seen: Dict[str, Any] = {}

    def reply(request):
        seen["request"] = request
        return "noted"

    client = client_for(MockProvider(reply=reply))
    response = client.post(
        CHAT,
        json={
            "message": "What could cause this?",
            "context": {"patientId": "P-001", "symptoms": ["fever", "cough"], "history": "asthma", "ward": "3B"},
            "maxTokens": 256,
        },
    )
    assert response.status_code == 200
    request = seen["request"]
    assert [m.role for m in request.messages] == ["user"]
    assert request.messages[0].content == "What could cause this?"
    assert request.max_tokens == 256
    lines = request.system_prompt.split("\n")
    assert lines[0].startswith("You are a professional medical AI assistant")
    assert lines[1:] == ["Patient ID: P-001", "Symptoms: fever, cough", "History: asthma"]


def test_chat_named_provider(client):
    response = client.post(CHAT, json={"message": "hi", "provider": "kimi"})
    assert response.status_code == 200
    assert response.json()["message"] == "kimi says hi"


def test_chat_requires_message_or_messages(client):
    response = client.post(CHAT, json={})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "Chat failed"
    assert detail["code"] == "validation"
    assert "messages" in detail["message"]


def test_chat_out_of_range_parameter(client):
    response = client.post(CHAT, json={"message": "hi", "temperature": 5})
    assert response.status_code == 400


def test_chat_unknown_provider(client):
    response = client.post(CHAT, json={"message": "hi", "provider": "claude"})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "unknown_provider"


def test_chat_vendor_failure_maps_to_bad_gateway():
    client = client_for(MockProvider(errors=[AuthError(message="key revoked")]))
    response = client.post(CHAT, json={"message": "hi"})
    assert response.status_code == 502
    assert response.json()["detail"]["message"] == "key revoked"


def test_chat_without_healthy_provider_is_unavailable():
    client = client_for(MockProvider(init_error=TransportError(message="down")))
    response = client.post(CHAT, json={"message": "hi"})
    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "no_healthy_provider"


# --------------------------------------------------------------- streaming


def test_chat_stream_sse_framing(client):
    response = client.post(CHAT, json={"message": "hi", "stream": True})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.text.endswith("data: [DONE]\n\n")
    events = sse_events(response.text)
    assert events[-1] == "[DONE]"
    chunks = events[:-1]
    assert sum(1 for c in chunks if c["done"]) == 1
    assert chunks[-1]["done"] and chunks[-1]["error"] is None
    assert "".join(c["delta"].get("content") or "" for c in chunks) == DEFAULT_MOCK_REPLY
    assert len({c["id"] for c in chunks}) == 1


def test_chat_stream_error_is_terminal_event():
    client = client_for(MockProvider(stream_error_after=1))
    response = client.post(CHAT, json={"message": "hi", "stream": True})
    assert response.status_code == 200
    chunks = sse_events(response.text)[:-1]
    assert chunks[-1]["done"] is True
    assert chunks[-1]["finish_reason"] == "error"
    assert chunks[-1]["error"]["code"] == "transport"


def test_chat_stream_unknown_provider_fails_before_streaming(client):
    response = client.post(CHAT, json={"message": "hi", "stream": True, "provider": "claude"})
    assert response.status_code == 404


# ------------------------------------------------------ providers & switch


def test_list_providers(client):
    body = client.get(f"{API_PREFIX}/providers").json()
    assert body["success"] is True
    assert body["data"]["current"] == "deepseek"
    available = body["data"]["available"]
    assert [p["name"] for p in available] == ["deepseek", "kimi"]
    assert available[0]["current"] is True and available[0]["state"] == "healthy"


def test_switch_provider(client):
    response = client.post(f"{API_PREFIX}/provider/switch", json={"provider": "kimi"})
    assert response.status_code == 200
    assert response.json()["message"] == "Switched to kimi"
    assert client.get(f"{API_PREFIX}/providers").json()["data"]["current"] == "kimi"
    assert client.post(CHAT, json={"message": "hi"}).json()["message"] == "kimi says hi"


def test_switch_requires_provider(client):
    response = client.post(f"{API_PREFIX}/provider/switch", json={})
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "provider is required"


def test_switch_unknown_provider(client):
    response = client.post(f"{API_PREFIX}/provider/switch", json={"provider": "claude"})
    assert response.status_code == 404


def test_switch_to_unreachable_provider_conflicts():
    client = client_for(MockProvider(name="deepseek"), MockProvider(name="kimi", init_error=AuthError(message="bad key")))
    response = client.post(f"{API_PREFIX}/provider/switch", json={"provider": "kimi"})
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "Failed to switch provider"
    assert detail["code"] == "auth"


# ------------------------------------------------------------------- stats


def test_stats(client):
    client.post(CHAT, json={"message": "hi"})
    body = client.get(f"{API_PREFIX}/stats").json()
    assert body["success"] is True
    assert body["data"]["deepseek"]["total_requests"] == 1
    assert body["data"]["kimi"]["total_requests"] == 0
    assert body["data"]["deepseek"]["health"]["state"] == "healthy"


def test_shutdown_closes_providers():
    mock = MockProvider()
    container = build_container(providers={"mock": mock})
    with TestClient(create_app(container)) as client:
        assert client.get(f"{API_PREFIX}/providers").status_code == 200
    with pytest.raises(ProviderUnavailableError):
        mock.chat(user_request())
