"""DI container for the providers layer.

Acts as the composition root: one container owns one ``ProviderManager``
and hands it to the HTTP service or any other caller.
"""
from __future__ import annotations

from .container import ProvidersContainer, build_container

__all__ = ["ProvidersContainer", "build_container"]
