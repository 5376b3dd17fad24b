"""One-class-per-file parts for provider usage statistics."""

from .stats_snapshot import ProviderStatsSnapshot
from .provider_stats import DEFAULT_EMA_ALPHA, ProviderStats

__all__ = ["ProviderStatsSnapshot", "ProviderStats", "DEFAULT_EMA_ALPHA"]
