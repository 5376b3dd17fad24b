"""Dependency injection container for the providers layer.

Goals:
- Own exactly one :class:`ProviderManager` per container instead of a
  module-level "initialized" flag.
- Centralize how provider configs and manager settings are resolved so the
  HTTP service and scripts build the manager the same way.
- Let tests inject prebuilt adapters or an ``httpx`` transport.

The ``config`` mapping has the same shape as the external config file::

    {"providers": {"deepseek": {"api_key": "..."}}, "order": [...], "manager": {...}}

When it has no ``providers`` section the environment and
``PROVIDERS_CONFIG_FILE`` are used.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from ..base.interfaces import AIProvider
from ..config import get_typed_provider_config, load_manager_settings, load_provider_configs
from ..config.provider_config import ProviderConfig
from ..config.settings import ManagerSettings
from ..manager import ProviderManager

# Providers that need no credential to initialize.
_KEYLESS_PROVIDERS = frozenset({"mock"})


class ProvidersContainer:
    """Composition root for provider services and singletons."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        providers: Optional[Mapping[str, AIProvider]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        """Initialize the container.

        Args:
            config: Optional configuration document (see module docstring).
            transport: ``httpx`` transport handed to every HTTP adapter.
            providers: Prebuilt adapters registered alongside configured ones.
            sleep: Backoff sleep injected into retry policies (tests).
        """
        self._config = config or {}
        self._transport = transport
        self._prebuilt = dict(providers or {})
        self._sleep = sleep
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.Lock()

    # ---- Configuration ----
    def settings(self) -> ManagerSettings:
        """Return the shared manager settings (file/env merged with ``config['manager']``)."""
        if "settings" not in self._singletons:
            section = self._config.get("manager")
            self._singletons["settings"] = load_manager_settings(section if isinstance(section, dict) else None)
        return self._singletons["settings"]

    def provider_configs(self) -> Dict[str, ProviderConfig]:
        """Ordered ``{name: ProviderConfig}`` for every usable provider.

        Entries of the ``providers`` section are treated as overrides on top
        of defaults, file and environment. A provider without an api key is
        left out unless it needs none.
        """
        section = self._config.get("providers")
        order = self._config.get("order")
        if not isinstance(section, Mapping):
            if self._prebuilt:
                return {}
            return load_provider_configs(order if isinstance(order, list) else None)
        names = order if isinstance(order, list) and order else list(section)
        configs: Dict[str, ProviderConfig] = {}
        for raw_name in names:
            name = str(raw_name).lower().strip()
            overrides = section.get(raw_name) or section.get(name) or {}
            cfg = get_typed_provider_config(name, overrides if isinstance(overrides, dict) else None)
            if cfg.api_key or name in _KEYLESS_PROVIDERS:
                configs[name] = cfg
        return configs

    # ---- Shared singletons ----
    def manager(self) -> ProviderManager:
        """Return the shared, initialized :class:`ProviderManager`.

        The manager is built once. Initialization is retried on the next
        call if it previously found no healthy provider.

        Raises:
            NoHealthyProviderError: no provider could be initialized.
        """
        with self._lock:
            manager = self._singletons.get("manager")
            if manager is None:
                manager = ProviderManager(
                    self.provider_configs(),
                    settings=self.settings(),
                    providers=self._prebuilt,
                    transport=self._transport,
                    sleep=self._sleep,
                )
                self._singletons["manager"] = manager
        manager.initialize()
        return manager

    # ---- Providers ----
    def provider(self, name: str) -> AIProvider:
        """Return the adapter registered under ``name`` in the shared manager."""
        return self.manager().get_provider(name)

    def clear(self) -> None:
        """Close the manager and drop every cached singleton."""
        with self._lock:
            manager = self._singletons.pop("manager", None)
            self._singletons.clear()
        if manager is not None:
            manager.close()


def build_container(
    config: Optional[Dict[str, Any]] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
    providers: Optional[Mapping[str, AIProvider]] = None,
) -> ProvidersContainer:
    """Construct and return a new ProvidersContainer instance."""
    return ProvidersContainer(config=config, transport=transport, providers=providers)


__all__ = ["ProvidersContainer", "build_container"]
