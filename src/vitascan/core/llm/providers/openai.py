"""OpenAI provider (vision via image data URLs, audio via ``input_audio``)."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from vitascan.core.llm.provider import ProviderResponse, UnsupportedSampleError

if TYPE_CHECKING:
    from vitascan.domains.screening.models import Sample

# input_audio only takes these two encodings
_AUDIO_FORMATS = {
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
}


def build_user_content(user_message: str, sample: Sample) -> list[dict[str, Any]]:
    """Build the multimodal user content parts for one sample."""
    parts: list[dict[str, Any]] = [{"type": "text", "text": user_message}]
    if sample.is_image:
        parts.append({"type": "image_url", "image_url": {"url": sample.to_data_url()}})
    elif sample.is_audio:
        fmt = _AUDIO_FORMATS.get(sample.mime_type.lower())
        if fmt is None:
            raise UnsupportedSampleError(
                f"OpenAI audio input supports wav/mp3 only, got {sample.mime_type!r}"
            )
        parts.append(
            {"type": "input_audio", "input_audio": {"data": sample.to_base64(), "format": fmt}}
        )
    else:
        raise UnsupportedSampleError(f"Unsupported sample type: {sample.mime_type!r}")
    return parts


class OpenAIProvider:
    """OpenAI provider using the OpenAI SDK."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        audio_model: str = "gpt-4o-audio-preview",
    ) -> None:
        import openai

        self.client = openai.AsyncOpenAI(api_key=api_key)
        self.model = model
        self.audio_model = audio_model

    async def analyze_sample(
        self,
        system_message: str,
        user_message: str,
        sample: Sample,
        max_tokens: int = 1500,
        temperature: float = 0.2,
    ) -> ProviderResponse:
        content = build_user_content(user_message, sample)
        request: dict[str, Any] = {
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_message},
                {"role": "user", "content": content},
            ],
        }
        if sample.is_audio:
            request["model"] = self.audio_model
            request["modalities"] = ["text"]
        else:
            request["model"] = self.model
            request["response_format"] = {"type": "json_object"}

        start = time.monotonic()
        response = await self.client.chat.completions.create(**request)
        elapsed_ms = (time.monotonic() - start) * 1000

        choice = response.choices[0] if response.choices else None
        text = choice.message.content or "" if choice else ""
        usage = response.usage
        return ProviderResponse(
            content=text,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=request["model"],
            latency_ms=elapsed_ms,
        )
