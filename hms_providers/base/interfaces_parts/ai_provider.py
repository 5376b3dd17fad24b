"""AIProvider contract (single-class module).

Every vendor adapter implements this interface; the manager and the HTTP
layer only ever talk to adapters through it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, ClassVar, Optional

from ..capabilities import CapabilityDescriptor
from ..models import ChatRequest, ChatResponse, TokenUsage

if TYPE_CHECKING:
    from ...config.provider_config import ProviderConfig
    from ..metrics import HealthSnapshot, ProviderHealth
    from ..resilience.retry import RetryPolicy
    from ..streaming import ChatStream, StreamOutcome


class AIProvider(ABC):
    """Uniform chat contract over heterogeneous AI vendors.

    Implementations translate :class:`ChatRequest` into vendor payloads,
    normalize responses into :class:`ChatResponse` / ``StreamResponse`` and
    never leak vendor objects upstream. All failures surface as ``AIError``.
    """

    capabilities: ClassVar[CapabilityDescriptor]
    health: "ProviderHealth"

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Canonical provider identifier, e.g. ``"deepseek"``."""

    @abstractmethod
    def initialize(self, config: "ProviderConfig") -> None:
        """Store credentials, open the transport and probe the vendor.

        Raises ``AuthError`` for missing or rejected credentials and the
        classified error for any other probe failure.
        """

    @abstractmethod
    def chat(self, request: ChatRequest) -> ChatResponse:
        """Execute one blocking chat completion (single attempt)."""

    @abstractmethod
    def stream_chat(
        self,
        request: ChatRequest,
        *,
        retry_policy: Optional["RetryPolicy"] = None,
        on_complete: Optional[Callable[["StreamOutcome"], None]] = None,
    ) -> "ChatStream":
        """Return a lazy, closable stream of chunks ending in one ``done`` chunk.

        ``retry_policy`` governs stream setup only (before the first chunk).
        """

    @abstractmethod
    def is_healthy(self) -> bool:
        """Last recorded health; never performs network I/O."""

    def health_check(self) -> "HealthSnapshot":
        """Actively re-check reachability and return the resulting snapshot.

        Adapters that can probe their vendor override this; a successful probe
        clears ``DEGRADED`` and a failed one is recorded like a failed call.
        The default reports the recorded state. Never raises.
        """
        return self.health.snapshot()

    def estimate_cost(self, usage: Optional[TokenUsage], model: str) -> float:
        """Price of one call in USD from its token usage (0.0 when unpriced)."""
        return 0.0

    def default_model(self) -> Optional[str]:
        return None

    def close(self) -> None:  # pragma: no cover - default no-op
        """Release transport resources."""


__all__ = ["AIProvider"]
