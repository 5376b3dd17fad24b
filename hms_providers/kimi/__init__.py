"""Kimi (Moonshot AI) provider adapter."""

from .client import KimiProvider

__all__ = ["KimiProvider"]
