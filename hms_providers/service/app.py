from __future__ import annotations

import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from hms_providers.base.errors import AIError
from hms_providers.config.defaults import PROVIDER_SERVICE_CORS_DEFAULT_ORIGINS
from hms_providers.di import ProvidersContainer, build_container
from hms_providers.manager import ProviderManager

from .app_parts.app_core import (
    ChatBody,
    SwitchBody,
    _build_providers_response,
    _build_stats_response,
    _handle_chat,
    _handle_switch,
    _http_error,
)
from .chat_stream import open_chat_stream

API_PREFIX = "/api/v1/ai"

router = APIRouter()


def _manager(request: Request) -> ProviderManager:
    """Return the initialized manager of the app's container (503 when none is healthy)."""
    container: ProvidersContainer = request.app.state.container
    try:
        return container.manager()
    except AIError as err:
        raise _http_error(err, "AI providers unavailable") from err


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@router.get("/api/health")
def health() -> Dict[str, Any]:
    """Check the health status of the service.

    Does not touch any provider; use ``/api/v1/ai/providers`` for that.
    """
    return {"ok": True}


# ---------------------------------------------------------------------------
# Chat endpoint
# ---------------------------------------------------------------------------


@router.post(f"{API_PREFIX}/chat")
def post_chat(body: ChatBody, request: Request):
    """Chat with the current (or named) provider.

    Returns a JSON payload, or ``text/event-stream`` when ``stream`` is true.
    """
    manager = _manager(request)
    if body.stream:
        return open_chat_stream(body, manager)
    return _handle_chat(body, manager)


# ---------------------------------------------------------------------------
# Providers, switching and statistics
# ---------------------------------------------------------------------------


@router.get(f"{API_PREFIX}/providers")
def get_providers(request: Request) -> Dict[str, Any]:
    """List registered providers with their health and the current one."""
    return _build_providers_response(_manager(request))


@router.post(f"{API_PREFIX}/provider/switch")
def post_switch_provider(body: SwitchBody, request: Request) -> Dict[str, Any]:
    return _handle_switch(body, _manager(request))


@router.get(f"{API_PREFIX}/stats")
def get_stats(request: Request) -> Dict[str, Any]:
    """Per-provider usage counters and health snapshots."""
    return _build_stats_response(_manager(request))


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(container: Optional[ProvidersContainer] = None) -> FastAPI:
    """Build the FastAPI app around ``container``.

    The container's manager is created and initialized on the first request
    that needs it, so building the app never touches the network.
    """
    application = FastAPI(title="HMS AI Provider Service", version="0.1.0")
    application.state.container = container or build_container()

    cors_origins_env = os.getenv("PROVIDER_SERVICE_CORS_ORIGINS", PROVIDER_SERVICE_CORS_DEFAULT_ORIGINS)
    allow_origins = [o.strip() for o in cors_origins_env.split(",") if o.strip()]
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(router)

    @application.on_event("shutdown")
    def _close_providers() -> None:
        application.state.container.clear()

    return application


app = create_app()


def get_app() -> FastAPI:
    """Return the FastAPI application instance for this service."""
    return app


__all__ = ["app", "create_app", "get_app", "router", "API_PREFIX"]
