"""Provider health and usage metrics."""

from .health_parts import HealthSnapshot, HealthState, ProviderHealth
from .stats_parts import DEFAULT_EMA_ALPHA, ProviderStats, ProviderStatsSnapshot

__all__ = [
    "HealthSnapshot",
    "HealthState",
    "ProviderHealth",
    "DEFAULT_EMA_ALPHA",
    "ProviderStats",
    "ProviderStatsSnapshot",
]
