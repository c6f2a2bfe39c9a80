"""Mock analysis provider for testing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from vitascan.core.llm.provider import ProviderResponse

if TYPE_CHECKING:
    from vitascan.domains.screening.models import Sample


class MockProvider:
    """Mock provider for testing. Returns canned content.

    ``responses`` maps a marker found in the user message (the gateway puts
    the modality name there) to the content to return; anything else gets
    ``default_content``.
    """

    name = "mock"

    def __init__(
        self,
        default_content: str = "{}",
        responses: dict[str, str] | None = None,
    ) -> None:
        self.default_content = default_content
        self.responses = dict(responses or {})
        self.last_system_message: str = ""
        self.last_user_message: str = ""
        self.samples: list[Sample] = []
        self.call_count: int = 0

    async def analyze_sample(
        self,
        system_message: str,
        user_message: str,
        sample: Sample,
        max_tokens: int = 1500,
        temperature: float = 0.2,
    ) -> ProviderResponse:
        self.last_system_message = system_message
        self.last_user_message = user_message
        self.samples.append(sample)
        self.call_count += 1

        content = self.default_content
        for marker, canned in self.responses.items():
            if f'"{marker}"' in user_message:
                content = canned
                break
        return ProviderResponse(
            content=content,
            input_tokens=len(system_message.split()) + len(user_message.split()),
            output_tokens=len(content.split()),
            model="mock",
            latency_ms=0.0,
        )
