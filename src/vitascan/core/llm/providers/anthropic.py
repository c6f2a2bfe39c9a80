"""Anthropic Claude provider (image samples only)."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from vitascan.core.llm.provider import ProviderResponse, UnsupportedSampleError

if TYPE_CHECKING:
    from vitascan.domains.screening.models import Sample

_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


def build_image_block(sample: Sample) -> dict[str, Any]:
    """Build a base64 image content block for the Messages API."""
    media_type = sample.mime_type.lower()
    if media_type == "image/jpg":
        media_type = "image/jpeg"
    if media_type not in _IMAGE_TYPES:
        raise UnsupportedSampleError(f"Claude accepts jpeg/png/gif/webp images, got {sample.mime_type!r}")
    return {
        "type": "image",
        "source": {"type": "base64", "media_type": media_type, "data": sample.to_base64()},
    }


class AnthropicProvider:
    """Claude provider using the Anthropic SDK."""

    name = "anthropic"

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5-20250929") -> None:
        import anthropic

        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model

    async def analyze_sample(
        self,
        system_message: str,
        user_message: str,
        sample: Sample,
        max_tokens: int = 1500,
        temperature: float = 0.2,
    ) -> ProviderResponse:
        image_block = build_image_block(sample)

        start = time.monotonic()
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_message,
            messages=[
                {
                    "role": "user",
                    "content": [image_block, {"type": "text", "text": user_message}],
                }
            ],
        )
        elapsed_ms = (time.monotonic() - start) * 1000

        content = response.content[0].text if response.content else ""
        return ProviderResponse(
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self.model,
            latency_ms=elapsed_ms,
        )
