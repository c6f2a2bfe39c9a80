"""Analysis provider implementations."""

from vitascan.core.llm.providers.anthropic import AnthropicProvider
from vitascan.core.llm.providers.mock import MockProvider
from vitascan.core.llm.providers.openai import OpenAIProvider

__all__ = ["AnthropicProvider", "MockProvider", "OpenAIProvider"]
