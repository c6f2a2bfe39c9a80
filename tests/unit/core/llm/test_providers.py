"""Tests for the analysis provider factory and request formatting."""

from __future__ import annotations

import asyncio

import pytest

from vitascan.core.llm.provider import LLMProvider, UnsupportedSampleError, create_provider
from vitascan.core.llm.providers.anthropic import build_image_block
from vitascan.core.llm.providers.mock import MockProvider
from vitascan.core.llm.providers.openai import build_user_content
from vitascan.domains.screening.models import Sample


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestCreateProvider:
    def test_mock(self):
        provider = create_provider("mock")
        assert isinstance(provider, MockProvider)
        assert isinstance(provider, LLMProvider)
        assert provider.name == "mock"

    def test_openai(self):
        provider = create_provider("openai", api_key="sk-test", model="gpt-4o")
        assert provider.name == "openai"
        assert provider.model == "gpt-4o"
        assert provider.audio_model == "gpt-4o-audio-preview"

    def test_anthropic(self):
        provider = create_provider("anthropic", api_key="sk-ant-test")
        assert provider.name == "anthropic"
        assert provider.model.startswith("claude")

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            create_provider("gemini")


class TestOpenAIContent:
    def test_image_is_sent_as_data_url(self):
        sample = Sample(mime_type="image/png", data=b"\x89PNG")
        parts = build_user_content("Return JSON", sample)
        assert parts[0] == {"type": "text", "text": "Return JSON"}
        assert parts[1]["type"] == "image_url"
        assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")

    def test_wav_is_sent_as_input_audio(self):
        sample = Sample(mime_type="audio/wav", data=b"RIFF")
        parts = build_user_content("Return JSON", sample)
        assert parts[1] == {
            "type": "input_audio",
            "input_audio": {"data": sample.to_base64(), "format": "wav"},
        }

    def test_mpeg_maps_to_mp3(self):
        parts = build_user_content("x", Sample(mime_type="audio/mpeg", data=b"ID3"))
        assert parts[1]["input_audio"]["format"] == "mp3"

    def test_webm_audio_unsupported(self):
        with pytest.raises(UnsupportedSampleError):
            build_user_content("x", Sample(mime_type="audio/webm", data=b"\x1a"))

    def test_non_media_unsupported(self):
        with pytest.raises(UnsupportedSampleError):
            build_user_content("x", Sample(mime_type="application/pdf", data=b"%PDF"))


class TestAnthropicImageBlock:
    def test_png_block(self):
        block = build_image_block(Sample(mime_type="image/png", data=b"\x89PNG"))
        assert block["type"] == "image"
        assert block["source"]["media_type"] == "image/png"
        assert block["source"]["type"] == "base64"

    def test_jpg_alias(self):
        block = build_image_block(Sample(mime_type="image/jpg", data=b"\xff\xd8"))
        assert block["source"]["media_type"] == "image/jpeg"

    def test_audio_unsupported(self):
        with pytest.raises(UnsupportedSampleError):
            build_image_block(Sample(mime_type="audio/wav", data=b"RIFF"))


class TestMockProvider:
    def test_default_content(self, image_sample):
        provider = MockProvider()
        response = _run(provider.analyze_sample("sys", "user", image_sample))
        assert response.content == "{}"
        assert response.model == "mock"
        assert provider.call_count == 1
        assert provider.samples == [image_sample]

    def test_marker_selects_response(self, image_sample):
        provider = MockProvider(responses={"eyes": '{"eyes": {}}'})
        response = _run(provider.analyze_sample("sys", 'schema {"eyes":{}}', image_sample))
        assert response.content == '{"eyes": {}}'
        assert provider.last_user_message == 'schema {"eyes":{}}'
