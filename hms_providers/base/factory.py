"""Provider Factory utilities.

Purpose
-------
Create adapter instances implementing :class:`AIProvider` from a canonical
name. Adapter modules are imported lazily with ``importlib`` so importing the
factory never pulls in every vendor module.

Scope
-----
Supported providers: ``deepseek``, ``gemini``, ``kimi``, ``openai`` and the
network-free ``mock``.

Failure semantics
-----------------
Unknown names, import failures and constructor errors all raise
:class:`UnknownProviderError` (an ``AIError`` with code
``UNKNOWN_PROVIDER``). The factory performs no I/O and no retries.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Optional, Tuple, Type

import httpx

from .errors import UnknownProviderError
from .interfaces import AIProvider
from .metrics import ProviderHealth


def create_provider(provider: str, **kwargs: Any) -> AIProvider:
    """Shorthand for :meth:`ProviderFactory.create`."""
    return ProviderFactory.create(provider, **kwargs)


class ProviderFactory:
    """Create provider adapters based on a canonical name (e.g. ``"deepseek"``)."""

    # Map canonical provider names to import paths and class names
    _PROVIDERS: Dict[str, Dict[str, str]] = {
        "deepseek": {"module": "hms_providers.deepseek.client", "class": "DeepseekProvider"},
        "gemini": {"module": "hms_providers.gemini.client", "class": "GeminiProvider"},
        "kimi": {"module": "hms_providers.kimi.client", "class": "KimiProvider"},
        "openai": {"module": "hms_providers.openai.client", "class": "OpenAIProvider"},
        "mock": {"module": "hms_providers.mock.client", "class": "MockProvider"},
    }

    @classmethod
    def create(
        cls,
        provider: str,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        health: Optional[ProviderHealth] = None,
        **kwargs: Any,
    ) -> AIProvider:
        """Create a provider adapter instance.

        Parameters
        ----------
        provider:
            Canonical provider name, case-insensitive.
        transport:
            Optional ``httpx`` transport for HTTP adapters (ignored by ``mock``).
        health:
            Health tracker shared with the manager; adapters create their own
            when omitted.
        **kwargs:
            Extra adapter constructor arguments (mock scripting, for example).

        Raises
        ------
        UnknownProviderError
            Unknown name, failed import, missing class or constructor error.
        """
        name = (provider or "").lower().strip()
        spec = cls._PROVIDERS.get(name)
        if not spec:
            raise UnknownProviderError(message=f"Unknown provider '{provider}'", provider=name or None)

        module_path, class_name = spec["module"], spec["class"]
        try:
            mod = import_module(module_path)
        except ImportError as exc:  # pragma: no cover - import failure path
            raise UnknownProviderError(
                message=f"Failed to import module '{module_path}' for provider '{provider}': {exc}",
                provider=name,
            ) from exc
        try:
            klass: Type[AIProvider] = getattr(mod, class_name)
        except AttributeError as exc:  # pragma: no cover - registry typo
            raise UnknownProviderError(
                message=f"Adapter class '{class_name}' not found in '{module_path}'",
                provider=name,
            ) from exc

        ctor_kwargs: Dict[str, Any] = dict(kwargs)
        if health is not None:
            ctor_kwargs["health"] = health
        if name == "mock":
            ctor_kwargs.setdefault("name", name)
        elif transport is not None:
            ctor_kwargs["transport"] = transport
        try:
            return klass(**ctor_kwargs)
        except TypeError as exc:
            raise UnknownProviderError(
                message=f"Invalid arguments for '{provider}' adapter constructor: {exc}",
                provider=name,
            ) from exc

    @classmethod
    def supported(cls) -> Tuple[str, ...]:
        """Canonical provider names in deterministic order."""
        return tuple(cls._PROVIDERS.keys())

    @classmethod
    def is_supported(cls, provider: str) -> bool:
        return (provider or "").lower().strip() in cls._PROVIDERS


__all__ = ["ProviderFactory", "create_provider", "UnknownProviderError"]
