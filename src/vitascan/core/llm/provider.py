"""Analysis provider protocol: the narrow capability behind modality analysis.

The gateway hands a prompt and one binary sample to a provider and gets raw
text back (expected to be JSON). All provider-specific request formatting
lives in the adapters under ``vitascan.core.llm.providers``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vitascan.domains.screening.models import Sample


@dataclass
class ProviderResponse:
    """Response from an analysis provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float


class UnsupportedSampleError(ValueError):
    """Raised when a provider cannot accept a sample's MIME type."""


@runtime_checkable
class LLMProvider(Protocol):
    """Abstract interface for multimodal analysis calls."""

    name: str

    async def analyze_sample(
        self,
        system_message: str,
        user_message: str,
        sample: Sample,
        max_tokens: int = 1500,
        temperature: float = 0.2,
    ) -> ProviderResponse: ...


def create_provider(
    provider_name: str,
    api_key: str = "",
    model: str = "",
    audio_model: str = "",
) -> LLMProvider:
    """Factory function to create an analysis provider by name.

    Args:
        provider_name: "openai", "anthropic", or "mock"
        api_key: API key for the provider.
        model: Vision model identifier override.
        audio_model: Audio-capable model override (OpenAI only).

    Returns:
        An LLMProvider instance.
    """
    if provider_name == "openai":
        from vitascan.core.llm.providers.openai import OpenAIProvider

        return OpenAIProvider(
            api_key=api_key,
            model=model or "gpt-4o-mini",
            audio_model=audio_model or "gpt-4o-audio-preview",
        )
    elif provider_name == "anthropic":
        from vitascan.core.llm.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=model or "claude-sonnet-4-5-20250929")
    elif provider_name == "mock":
        from vitascan.core.llm.providers.mock import MockProvider

        return MockProvider()
    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
