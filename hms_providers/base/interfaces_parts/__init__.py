"""Single-class interface modules. Import from ``hms_providers.base.interfaces``."""

from .ai_provider import AIProvider

__all__ = ["AIProvider"]
