"""Provider registry, routing and failover.

``ProviderManager`` is the single entry point callers use for chat and
streaming; see :mod:`hms_providers.manager.provider_manager` for the
lifecycle and failover rules.
"""
from __future__ import annotations

from .provider_status import ProviderStatus
from .provider_record import ProviderRecord
from .provider_manager import ProviderManager, should_failover

__all__ = ["ProviderManager", "ProviderRecord", "ProviderStatus", "should_failover"]
