"""MCP tools for per-modality analysis and full report generation."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Mapping

from fastmcp import FastMCP

if TYPE_CHECKING:
    from vitascan.domains.screening.analysis.gateway import ModalityAnalyzerGateway
    from vitascan.domains.screening.domain_logic.tables import MetricTables
    from vitascan.domains.screening.profiles import ProfileService

from vitascan.domains.screening.domain_logic.assembler import build_report
from vitascan.domains.screening.models import ModalityKind, Sample, parse_modality

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPES = {
    ModalityKind.AUDIO: "audio/wav",
}


# ---------------------------------------------------------------------------
# Input helpers
# ---------------------------------------------------------------------------

def decode_sample(modality: ModalityKind, entry: Any) -> Sample | None:
    """Decode one tool-level sample (``{data_base64, mime_type}`` or a bare string)."""
    default_mime = DEFAULT_MIME_TYPES.get(modality, "image/jpeg")
    if entry is None:
        return None
    if isinstance(entry, str):
        return Sample.from_base64(entry, default_mime)
    if not isinstance(entry, Mapping):
        raise ValueError(f"Sample for {modality.value!r} must be an object or a base64 string")
    data = entry.get("data_base64") or entry.get("data") or ""
    mime_type = entry.get("mime_type") or entry.get("mimeType") or default_mime
    return Sample.from_base64(str(data), str(mime_type))


def decode_samples(samples: Mapping[str, Any] | None) -> dict[ModalityKind, Sample | None]:
    """Validate modality keys and decode every sample. Raises ``ValueError``."""
    decoded: dict[ModalityKind, Sample | None] = {}
    for key, entry in (samples or {}).items():
        modality = parse_modality(key)
        decoded[modality] = decode_sample(modality, entry)
    return decoded


def register_analysis_tools(
    mcp: FastMCP,
    gateway: ModalityAnalyzerGateway,
    profiles: ProfileService,
    tables: MetricTables | None = None,
) -> None:
    """Register analysis and report-generation tools on the MCP server."""

    @mcp.tool
    async def analyze_modality(
        modality: str,
        sample_base64: str = "",
        mime_type: str = "image/jpeg",
    ) -> str:
        """Analyze one capture (face, eyes, tongue, skin, nails or audio).

        Returns ``{success, analysis, meta: {source}}``. An empty analysis with
        ``source`` ``none`` means nothing was analysed (no sample, no provider,
        or a sample type the provider cannot take); ``error`` means the
        provider call failed or returned malformed output.

        Args:
            modality: One of face | eyes | tongue | skin | nails | audio.
            sample_base64: Base64 image/audio bytes, or a data URL. Empty means no sample.
            mime_type: MIME type of the sample (e.g. 'image/jpeg', 'audio/wav').
        """
        kind = parse_modality(modality)
        sample = Sample.from_base64(sample_base64, mime_type)
        result = await gateway.analyze(kind, sample)
        return json.dumps(result.to_dict())

    @mcp.tool
    async def generate_health_report(
        samples: dict[str, Any],
        user_id: str = "",
    ) -> str:
        """Analyze several captures concurrently and assemble a health report.

        Args:
            samples: Map of modality -> {"data_base64": "...", "mime_type": "..."}.
                Modalities left out are not part of the report.
            user_id: Optional registered user; the report is appended to their history.
        """
        start_time = time.monotonic()
        decoded = decode_samples(samples)
        if user_id and not profiles.exists(user_id):
            raise ValueError(f"User not found: {user_id}")

        results = await gateway.analyze_many(decoded)
        submitted = [m for m, sample in decoded.items() if sample is not None]
        report = build_report(results, submitted, tables=tables)

        response: dict[str, Any] = {
            "success": True,
            "report": report.to_dict(),
            "sources": {m.value: r.source for m, r in results.items()},
        }
        if user_id:
            _, unlocked = profiles.record_report(user_id, report)
            response["historyRecorded"] = True
            response["newAchievements"] = unlocked

        logger.info(
            "generate_health_report: modalities=%d, elapsed=%.0fms",
            len(decoded),
            (time.monotonic() - start_time) * 1000,
        )
        return json.dumps(response)
