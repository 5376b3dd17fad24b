"""One-class-per-file parts for provider health tracking."""

from .health_state import HealthState
from .health_snapshot import HealthSnapshot
from .provider_health import ProviderHealth

__all__ = ["HealthState", "HealthSnapshot", "ProviderHealth"]
