"""Structured logging helpers and the events emitted by the manager."""

from __future__ import annotations

import json
import logging
from typing import List

from hms_providers.base.errors import TransportError
from hms_providers.base.log_support import JsonFormatter, redact_headers
from hms_providers.base.logging import (
    REQUIRED_NORMALIZED_KEYS,
    LogContext,
    _parse_level,  # type: ignore[attr-defined]
    configure_logger,
    get_logger,
    log_event,
    normalized_log_event,
)
from hms_providers.base.models import TokenUsage
from hms_providers.config.settings import ManagerSettings
from hms_providers.manager import ProviderManager
from hms_providers.mock import MockProvider
from hms_providers.openai import OpenAIProvider

from .helpers import VendorStub, keyed_config, user_request


class _ListHandler(logging.Handler):
    """Capture log messages into a list for assertions."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())

    def events(self) -> List[dict]:
        return [json.loads(m) for m in self.messages]


def _capture(name: str) -> _ListHandler:
    logger = get_logger(name)
    handler = _ListHandler()
    logger.handlers[:] = [handler]
    return handler


def test_parse_level_variants():
    assert _parse_level(None) == logging.INFO
    assert _parse_level("debug") == logging.DEBUG
    assert _parse_level("WARN") == logging.WARNING
    assert _parse_level("verbose", default=logging.ERROR) == logging.ERROR


def test_relative_names_join_shared_hierarchy():
    assert get_logger("providers.kimi").name == "hms_providers.providers.kimi"
    assert get_logger("hms_providers.manager").name == "hms_providers.manager"
    assert get_logger().propagate is False


def test_log_event_drops_none_and_masks_api_key():
    handler = _capture("tests.log_event")
    log_event(get_logger("tests.log_event"), "provider.init.start", LogContext(provider="deepseek"), api_key="sk-abcdefghijkl", model=None)
    payload = handler.events()[-1]
    assert payload["event"] == "provider.init.start"
    assert payload["provider"] == "deepseek"
    assert "model" not in payload
    assert payload["api_key"].endswith("ijkl") and "abcd" not in payload["api_key"]


def test_normalized_event_has_canonical_keys():
    handler = _capture("tests.normalized")
    normalized_log_event(
        get_logger("tests.normalized"),
        "stream.end",
        LogContext(provider="gemini", model="gemini-pro", request_id="r1"),
        phase="finalize",
        emitted=True,
        tokens=TokenUsage(1, 2, 3),
        chunks=4,
        phase_override=None,
    )
    payload = handler.events()[-1]
    for key in REQUIRED_NORMALIZED_KEYS:
        if key != "error_code":
            assert key in payload
    assert "error_code" not in payload
    assert payload["attempt"] is None
    assert payload["tokens"] == {"prompt_tokens": 1, "completion_tokens": 2, "total_tokens": 3}
    assert payload["chunks"] == 4
    assert "phase_override" not in payload


def test_extra_fields_never_overwrite_canonical_values():
    handler = _capture("tests.overwrite")
    normalized_log_event(get_logger("tests.overwrite"), "chat.end", None, phase="finalize", error_code="timeout", structured="no")
    payload = handler.events()[-1]
    assert payload["structured"] is True
    assert payload["error_code"] == "timeout"


def test_json_formatter_hoists_event_keys():
    record = logging.LogRecord("hms_providers.x", logging.INFO, __file__, 1, json.dumps({"event": "chat.start", "provider": "kimi"}), None, None)
    data = json.loads(JsonFormatter().format(record))
    assert data["event"] == "chat.start"
    assert data["provider"] == "kimi"
    assert data["level"] == "INFO"
    assert "msg" not in data


def test_redact_headers_masks_credentials():
    masked = redact_headers({"Authorization": "Bearer sk-0123456789abcdef", "Content-Type": "application/json"})
    assert "0123456789" not in masked["Authorization"]
    assert masked["Content-Type"] == "application/json"


def test_provider_init_logs_redacted_headers():
    handler = _capture("providers.openai")
    provider = OpenAIProvider(transport=VendorStub().transport)
    provider.initialize(keyed_config("sk-live-abcdefghijklmnop", organization="org-secret-123456"))
    start = [e for e in handler.events() if e["event"] == "provider.init.start"][0]
    headers = start["headers"]
    assert "abcdefghijkl" not in headers["Authorization"]
    assert headers["Authorization"].endswith("mnop")
    assert "secret" not in headers["OpenAI-Organization"]
    assert headers["Content-Type"] == "application/json"


def test_configure_logger_file_handler(tmp_path):
    path = tmp_path / "logs" / "providers.log"
    logger = configure_logger(level="DEBUG", file_path=str(path))
    try:
        log_event(get_logger("tests.file"), "file.event", None, value=1)
        for h in logger.handlers:
            h.flush()
        lines = path.read_text(encoding="utf-8").strip().splitlines()
        assert json.loads(lines[-1])["event"] == "file.event"
    finally:
        configure_logger(level="INFO", file_path=None)


def test_manager_logs_failover():
    handler = _capture("manager")
    primary = MockProvider(name="deepseek", errors=[TransportError(message="down")])
    manager = ProviderManager(
        providers={"deepseek": primary, "kimi": MockProvider(name="kimi")},
        settings=ManagerSettings(max_attempts=1),
    )
    manager.initialize()
    manager.chat(user_request())
    events = handler.events()
    failover = [e for e in events if e["event"] == "manager.failover"]
    assert failover and failover[0]["source"] == "deepseek" and failover[0]["target"] == "kimi"
    assert failover[0]["error_code"] == "transport"
    assert any(e["event"] == "manager.initialized" for e in events)
