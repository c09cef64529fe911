"""Chat model client."""

from .client import LLMClient

__all__ = ["LLMClient"]
