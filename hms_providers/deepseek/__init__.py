"""DeepSeek provider adapter."""

from .client import DeepseekProvider

__all__ = ["DeepseekProvider"]
