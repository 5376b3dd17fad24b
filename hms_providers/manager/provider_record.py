"""ProviderRecord: everything the manager keeps per registered provider."""

from __future__ import annotations

from dataclasses import dataclass

from ..base.interfaces import AIProvider
from ..base.metrics import ProviderHealth, ProviderStats
from ..base.resilience.retry import RetryPolicy
from ..config.provider_config import ProviderConfig
from .provider_status import ProviderStatus


@dataclass
class ProviderRecord:
    """Adapter plus its config, retry policy, health and usage counters.

    ``health`` is the same object the adapter reports through
    ``is_healthy()``, so both views always agree.
    """

    name: str
    provider: AIProvider
    config: ProviderConfig
    retry_policy: RetryPolicy
    stats: ProviderStats

    @property
    def health(self) -> ProviderHealth:
        return self.provider.health

    def status(self, *, current: bool = False) -> ProviderStatus:
        state = self.health.state
        return ProviderStatus(
            name=self.name,
            healthy=self.health.healthy,
            state=state,
            current=current,
            default_model=self.provider.default_model(),
        )


__all__ = ["ProviderRecord"]
