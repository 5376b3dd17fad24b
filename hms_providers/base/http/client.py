"""Shared HTTP plumbing for vendor adapters.

Purpose:
    Build ``httpx.Client`` instances configured from a provider config
    (base URL, per-attempt timeout, default headers) and turn vendor HTTP
    failures into classified :class:`AIError` values.

External dependencies:
    - ``httpx`` for the synchronous client. Tests inject an
      ``httpx.MockTransport`` through the ``transport`` argument.

Timeout strategy:
    - ``timeout_ms`` applies per attempt: to connect, and to each read of a
      streaming body. The retry executor owns the overall attempt budget.

Lifecycle & cleanup:
    - Every client built here is tracked and closed at interpreter exit via
      ``atexit``. Adapters close their own client in ``close()``; tests may
      call :func:`close_all_clients`.
"""

from __future__ import annotations

import atexit
import threading
import weakref
from typing import Any, Dict, Iterator, Mapping, Optional

import httpx

from ..errors import error_from_status

_CLIENTS: "weakref.WeakSet[httpx.Client]" = weakref.WeakSet()
_LOCK = threading.RLock()


def build_http_client(
    *,
    base_url: str,
    timeout_ms: int,
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, str]] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Return a new client bound to ``base_url``.

    Parameters:
        base_url: Vendor API root; request paths are relative to it.
        timeout_ms: Per-attempt timeout in milliseconds.
        headers: Default headers (auth, organization, custom).
        params: Default query parameters (Gemini passes its key this way).
        transport: Optional transport override (``httpx.MockTransport`` in tests).
    """
    kwargs: Dict[str, Any] = {
        "base_url": base_url.rstrip("/") + "/",
        "timeout": httpx.Timeout(timeout_ms / 1000.0),
        "headers": dict(headers or {}),
    }
    if params:
        kwargs["params"] = dict(params)
    if transport is not None:
        kwargs["transport"] = transport
    client = httpx.Client(**kwargs)
    with _LOCK:
        _CLIENTS.add(client)
    return client


def raise_for_vendor_status(response: httpx.Response, *, provider: str, model: Optional[str] = None) -> None:
    """Raise the classified :class:`AIError` for a non-2xx response."""
    if response.status_code < 400:
        return
    body: Any
    try:
        body = response.json()
    except ValueError:
        body = response.text
    raise error_from_status(response.status_code, body, provider=provider, model=model)


class HttpTextStream:
    """Iterable of decoded text chunks from a streaming response.

    Closing it closes the underlying response and returns the connection to
    the pool, even when the body was not fully read.
    """

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self._closed = False

    def __iter__(self) -> Iterator[str]:
        yield from self.response.iter_text()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.response.close()

    @property
    def closed(self) -> bool:
        return self._closed


def open_text_stream(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    provider: str,
    model: Optional[str] = None,
    json: Any = None,
    params: Optional[Mapping[str, str]] = None,
) -> HttpTextStream:
    """Send a streaming request and return its body as :class:`HttpTextStream`.

    A non-2xx status is read, closed and raised as a classified error so the
    caller's retry policy can decide whether to try again.
    """
    request = client.build_request(method, url, json=json, params=params)
    response = client.send(request, stream=True)
    if response.status_code >= 400:
        try:
            response.read()
        finally:
            response.close()
        raise_for_vendor_status(response, provider=provider, model=model)
    return HttpTextStream(response)


def close_all_clients() -> None:
    """Close every client created by :func:`build_http_client`."""
    with _LOCK:
        clients = list(_CLIENTS)
        _CLIENTS.clear()
    for c in clients:
        try:
            c.close()
        except Exception:  # nosec B110 - best-effort shutdown; close errors are not actionable
            pass


def _cleanup_at_exit() -> None:
    """atexit hook to ensure clients are closed on interpreter exit."""
    close_all_clients()


atexit.register(_cleanup_at_exit)

__all__ = [
    "build_http_client",
    "raise_for_vendor_status",
    "HttpTextStream",
    "open_text_stream",
    "close_all_clients",
]
