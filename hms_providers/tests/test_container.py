from __future__ import annotations

import pytest

from hms_providers.base.errors import NoHealthyProviderError, TransportError
from hms_providers.deepseek import DeepseekProvider
from hms_providers.di import ProvidersContainer, build_container
from hms_providers.mock import MockProvider

from .helpers import VendorStub, json_reply, openai_completion, user_request


def test_prebuilt_providers_are_registered_and_initialized():
    mock = MockProvider()
    container = build_container(providers={"mock": mock})
    manager = container.manager()
    assert manager.initialized
    assert container.manager() is manager
    assert mock.init_calls == 1
    assert container.provider("mock") is mock


def test_providers_section_filters_keyless_vendors():
    container = ProvidersContainer({"providers": {"deepseek": {}, "mock": {"default_model": "mock-xl"}}})
    configs = container.provider_configs()
    assert list(configs) == ["mock"]
    assert configs["mock"].default_model == "mock-xl"
    assert container.provider("mock").default_model() == "mock-xl"


def test_providers_section_with_transport():
    stub = VendorStub().queue(json_reply(openai_completion("ok")))
    container = build_container(
        {"providers": {"deepseek": {"apiKey": "sk-live-123456"}}, "order": ["deepseek"]},
        transport=stub.transport,
    )
    manager = container.manager()
    assert isinstance(manager.get_provider("deepseek"), DeepseekProvider)
    assert manager.chat(user_request()).text == "ok"
    assert stub.requests[0].headers["Authorization"] == "Bearer sk-live-123456"


def test_environment_is_used_without_providers_section(monkeypatch):
    monkeypatch.setenv("KIMI_API_KEY", "sk-kimi-env")
    configs = ProvidersContainer().provider_configs()
    assert list(configs) == ["kimi"]


def test_manager_settings_from_config_section():
    container = ProvidersContainer({"manager": {"default_provider": "Kimi", "max_attempts": "5"}})
    settings = container.settings()
    assert settings.default_provider == "kimi"
    assert settings.max_attempts == 5
    assert container.settings() is settings


def test_no_provider_available_raises_and_retries():
    mock = MockProvider(init_error=TransportError(message="down"))
    container = build_container(providers={"mock": mock})
    with pytest.raises(NoHealthyProviderError):
        container.manager()
    with pytest.raises(NoHealthyProviderError):
        container.manager()
    assert mock.init_calls == 2


def test_clear_closes_and_rebuilds():
    mock = MockProvider()
    container = build_container(providers={"mock": mock})
    first = container.manager()
    container.clear()
    assert not first.initialized
    second = container.manager()
    assert second is not first
    assert second.initialized
    assert mock.init_calls == 2
