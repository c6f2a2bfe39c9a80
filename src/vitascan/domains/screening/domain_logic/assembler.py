"""Report assembly: merge per-modality results into one immutable Report."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from vitascan.domains.screening.domain_logic.metrics import (
    build_recommendations,
    score_overall,
)
from vitascan.domains.screening.domain_logic.tables import MetricTables
from vitascan.domains.screening.models import (
    MODALITY_ORDER,
    AnalysisResult,
    ModalityKind,
    OverallHealth,
    Report,
    parse_modality,
    unique_in_order,
)

logger = logging.getLogger(__name__)


def merge_analyses(
    results: Mapping[Any, AnalysisResult | Mapping[str, Any] | None],
    submitted: Iterable[ModalityKind | str] = (),
) -> dict[ModalityKind, dict[str, Any]]:
    """Merge gateway results into the analyses mapping of a report.

    Presence carries meaning: a modality in ``submitted`` always ends up with
    at least ``{}`` ("sample provided, nothing usable came back"), while a
    modality with no sample is left out entirely. ``AnalysisResult`` values
    count as submitted when they were produced from a real sample; plain
    mappings count as present as-is.
    """
    submitted_set = {parse_modality(m) for m in submitted}
    collected: dict[ModalityKind, dict[str, Any]] = {}

    for key, value in results.items():
        modality = parse_modality(key)
        if value is None:
            continue
        if isinstance(value, AnalysisResult):
            if value.sample_provided or value.analysis:
                collected[modality] = dict(value.analysis)
        elif isinstance(value, Mapping):
            collected[modality] = dict(value)
        else:
            raise TypeError(f"Unexpected analysis value for {modality.value}: {type(value).__name__}")

    for modality in submitted_set:
        collected.setdefault(modality, {})

    return {m: collected[m] for m in MODALITY_ORDER if m in collected}


def assemble(
    analyses: Mapping[Any, Mapping[str, Any]],
    overall_health: OverallHealth | None = None,
    recommendations: Iterable[str] = (),
    timestamp: datetime | None = None,
) -> Report:
    """Combine analyses, the overall score and recommendations into a Report."""
    keyed = {parse_modality(k): v for k, v in analyses.items()}
    return Report(
        timestamp=timestamp or datetime.now(timezone.utc),
        analyses=keyed,
        overall_health=overall_health,
        recommendations=tuple(unique_in_order(recommendations)),
    )


def build_report(
    results: Mapping[Any, AnalysisResult | Mapping[str, Any] | None],
    submitted: Iterable[ModalityKind | str] = (),
    timestamp: datetime | None = None,
    tables: MetricTables | None = None,
) -> Report:
    """Merge, score, recommend and assemble in one step."""
    analyses = merge_analyses(results, submitted)
    overall = score_overall(analyses, tables)
    recommendations = build_recommendations(analyses)
    report = assemble(analyses, overall, recommendations, timestamp)
    logger.info(
        "Assembled report: modalities=%s, score=%d (%s), factors=%d, recommendations=%d",
        ",".join(m.value for m in report.present_modalities) or "-",
        overall.score,
        overall.level,
        overall.factor_count,
        len(report.recommendations),
    )
    return report
