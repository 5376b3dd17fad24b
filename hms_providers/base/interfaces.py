"""
Provider-agnostic interfaces for the providers layer.

Re-exports the single-class modules under
``hms_providers.base.interfaces_parts`` to keep imports stable.
"""

from __future__ import annotations

from .interfaces_parts import AIProvider

__all__ = ["AIProvider"]
