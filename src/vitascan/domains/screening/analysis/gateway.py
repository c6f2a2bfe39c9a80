"""Modality analyzer gateway: one sample in, one AnalysisResult out.

Every modality-level failure is absorbed into an explicit empty result
with a ``source`` saying why (``none`` or ``error``). The gateway never
retries and never fabricates data.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Mapping

from vitascan.core.llm.provider import LLMProvider, UnsupportedSampleError
from vitascan.domains.screening.analysis.prompts import build_modality_prompt
from vitascan.domains.screening.models import (
    MODALITY_ORDER,
    SOURCE_ERROR,
    SOURCE_NONE,
    AnalysisResult,
    ModalityKind,
    Sample,
    parse_modality,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


class MalformedProviderResponse(ValueError):
    """The provider replied, but not with the expected JSON object."""


def strip_code_fences(text: str) -> str:
    """Remove a single surrounding Markdown code fence, if present."""
    match = _FENCE_RE.match(text or "")
    return match.group(1).strip() if match else (text or "").strip()


def parse_provider_payload(modality: ModalityKind, text: str) -> dict[str, Any]:
    """Extract the analysis object for ``modality`` from a provider reply."""
    body = strip_code_fences(text)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedProviderResponse(f"Provider reply is not JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise MalformedProviderResponse("Provider reply is not a JSON object")
    if modality.value not in payload:
        raise MalformedProviderResponse(f"Provider reply lacks the {modality.value!r} key")
    analysis = payload[modality.value]
    if not isinstance(analysis, dict):
        raise MalformedProviderResponse(f"{modality.value!r} value is not an object")
    return analysis


class ModalityAnalyzerGateway:
    """Sends samples to the configured provider and normalizes the replies."""

    def __init__(self, provider: LLMProvider | None) -> None:
        self.provider = provider

    @property
    def provider_name(self) -> str:
        return self.provider.name if self.provider is not None else SOURCE_NONE

    async def analyze(
        self, modality: ModalityKind | str, sample: Sample | None = None
    ) -> AnalysisResult:
        """Analyze one sample. Raises ``ValueError`` only for an unknown modality."""
        modality = parse_modality(modality)

        if sample is None or not sample.data:
            return AnalysisResult.empty(modality, SOURCE_NONE, sample_provided=False)

        if self.provider is None:
            logger.warning("No analysis provider configured; %s returned empty", modality.value)
            return AnalysisResult.empty(modality, SOURCE_NONE, sample_provided=True)

        prompt = build_modality_prompt(modality)
        try:
            response = await self.provider.analyze_sample(
                system_message=prompt.system,
                user_message=prompt.instruction,
                sample=sample,
            )
        except UnsupportedSampleError as exc:
            logger.warning(
                "Provider %s cannot analyze %s sample (%s): %s",
                self.provider.name,
                modality.value,
                sample.mime_type,
                exc,
            )
            return AnalysisResult.empty(modality, SOURCE_NONE, sample_provided=True)
        except Exception:
            logger.exception(
                "Provider %s failed on %s sample", self.provider.name, modality.value
            )
            return AnalysisResult.empty(modality, SOURCE_ERROR, sample_provided=True)

        try:
            analysis = parse_provider_payload(modality, response.content)
        except MalformedProviderResponse as exc:
            logger.warning(
                "Malformed %s reply from %s (%d chars): %s",
                modality.value,
                self.provider.name,
                len(response.content or ""),
                exc,
            )
            return AnalysisResult.empty(modality, SOURCE_ERROR, sample_provided=True)

        logger.info(
            "Modality analysis: modality=%s, source=%s, model=%s, bytes=%d, tokens=%d+%d, latency=%.0fms",
            modality.value,
            self.provider.name,
            response.model,
            len(sample.data),
            response.input_tokens,
            response.output_tokens,
            response.latency_ms,
        )
        return AnalysisResult(
            modality=modality,
            analysis=analysis,
            source=self.provider.name,
            sample_provided=True,
        )

    async def analyze_many(
        self, samples: Mapping[ModalityKind | str, Sample | None]
    ) -> dict[ModalityKind, AnalysisResult]:
        """Analyze several modalities concurrently, waiting for all of them."""
        keyed = {parse_modality(k): v for k, v in samples.items()}
        modalities = [m for m in MODALITY_ORDER if m in keyed]
        results = await asyncio.gather(*(self.analyze(m, keyed[m]) for m in modalities))
        return dict(zip(modalities, results))
