"""Summary generation for repository nodes."""

from .llm import AnthropicClient, LLMClient
from .processor import NodeProcessor

__all__ = ["AnthropicClient", "LLMClient", "NodeProcessor"]
