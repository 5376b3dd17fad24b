"""Development launcher for the AI provider service.

``hms-providers-dev`` runs :data:`hms_providers.service.app.app` under
uvicorn. Every flag falls back to an environment variable, then to the
defaults in :mod:`hms_providers.config.defaults`:

- ``--host`` / ``PROVIDER_SERVICE_HOST`` (127.0.0.1)
- ``--port`` / ``PROVIDER_SERVICE_PORT`` (8091)
- ``--reload``, ``--no-reload`` / ``PROVIDER_SERVICE_RELOAD`` (on)
- ``--log-level`` / ``PROVIDERS_LOG_LEVEL`` (INFO)

Process supervisors usually export ``PROVIDER_SERVICE_RELOAD=false`` to keep
a single uvicorn process.
"""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

import uvicorn

from hms_providers.base.logging import configure_logger, get_logger, log_event
from hms_providers.config.defaults import PROVIDER_SERVICE_DEFAULT_HOST, PROVIDER_SERVICE_DEFAULT_PORT

APP_IMPORT_PATH = "hms_providers.service.app:app"

_TRUE = {"1", "t", "true", "y", "yes", "on"}
_FALSE = {"0", "f", "false", "n", "no", "off"}
_LOG_LEVELS = {"WARN": "WARNING", "WARNING": "WARNING", "DEBUG": "DEBUG", "INFO": "INFO", "ERROR": "ERROR", "CRITICAL": "CRITICAL"}


@dataclass(frozen=True)
class ServerOptions:
    host: str
    port: int
    reload: bool
    log_level: str


def _str2bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    text = value.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return default


def _port(value: Optional[str], default: int) -> int:
    try:
        port = int(value) if value else default
    except ValueError:
        return default
    return port if 0 < port < 65536 else default


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hms-providers-dev", description="Run the AI provider service with uvicorn.")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", default=None)
    reload_group = parser.add_mutually_exclusive_group()
    reload_group.add_argument("--reload", dest="reload", action="store_true", default=None)
    reload_group.add_argument("--no-reload", dest="reload", action="store_false")
    parser.add_argument("--log-level", default=None)
    parser.set_defaults(reload=None)
    return parser


def resolve_options(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> ServerOptions:
    """Merge command-line flags over environment variables over defaults.

    Unparseable or out-of-range ports fall back to the default port, and
    unknown log levels to INFO.
    """
    env = os.environ if environ is None else environ
    args = build_parser().parse_args(argv)
    reload_enabled = args.reload if args.reload is not None else _str2bool(env.get("PROVIDER_SERVICE_RELOAD"), True)
    return ServerOptions(
        host=args.host or env.get("PROVIDER_SERVICE_HOST") or PROVIDER_SERVICE_DEFAULT_HOST,
        port=_port(args.port or env.get("PROVIDER_SERVICE_PORT"), PROVIDER_SERVICE_DEFAULT_PORT),
        reload=reload_enabled,
        log_level=_LOG_LEVELS.get((args.log_level or env.get("PROVIDERS_LOG_LEVEL") or "").strip().upper(), "INFO"),
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    options = resolve_options(argv)
    configure_logger(level=options.log_level)
    log_event(
        get_logger("service"),
        "service.dev_server.start",
        None,
        host=options.host,
        port=options.port,
        reload=options.reload,
    )
    uvicorn.run(
        APP_IMPORT_PATH,
        host=options.host,
        port=options.port,
        reload=options.reload,
        log_level=options.log_level.lower(),
    )


if __name__ == "__main__":
    main()
