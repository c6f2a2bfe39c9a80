"""Deterministic metric extraction, overall scoring and recommendations.

All three operations read the loosely-typed per-modality analyses and never
raise for missing or oddly-typed fields: absent data yields fewer metrics,
fewer score factors, or fewer recommendations.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from vitascan.domains.screening.domain_logic.tables import (
    DisplayRule,
    LinearRule,
    MetricTables,
    load_metric_tables,
    lookup_path,
)
from vitascan.domains.screening.models import (
    MODALITY_ORDER,
    Metric,
    ModalityKind,
    OverallHealth,
    level_for_score,
    parse_modality,
    unique_in_order,
)

Analyses = Mapping[Any, Mapping[str, Any]]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_percent(value: float) -> int:
    """Round half-up and clamp to [0, 100]. Non-finite input clamps to 0."""
    if not math.isfinite(value):
        return 0
    return max(0, min(100, round_half_up(value)))


def _num(val: Any) -> float | None:
    """Safely convert to float, returning None for missing or non-numeric."""
    if val is None or isinstance(val, bool):
        return None
    try:
        number = float(val)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _qualitative(val: Any) -> str | None:
    if isinstance(val, str) and val.strip():
        return val.strip().lower()
    return None


def _normalize(analyses: Analyses) -> dict[ModalityKind, Mapping[str, Any]]:
    """Key analyses by ModalityKind, dropping unknown keys and non-mapping values."""
    out: dict[ModalityKind, Mapping[str, Any]] = {}
    for key, value in (analyses or {}).items():
        try:
            modality = parse_modality(key)
        except ValueError:
            continue
        if isinstance(value, Mapping):
            out[modality] = value
    return out


# ---------------------------------------------------------------------------
# Metric extraction
# ---------------------------------------------------------------------------

def _display_metric(rule: DisplayRule, analysis: Mapping[str, Any]) -> Metric | None:
    raw = lookup_path(analysis, rule.path)
    key = _qualitative(raw)
    if key is None or key not in rule.values:
        return None
    return Metric(
        label=rule.label,
        patient_display=str(raw).strip(),
        normal_display=rule.normal_display,
        patient_percent=clamp_percent(rule.values[key]),
        normal_percent=clamp_percent(rule.normal_percent),
    )


def _linear_percent(value: float, rule: LinearRule) -> int:
    return clamp_percent((value - rule.low) / (rule.high - rule.low) * 100)


def _linear_metric(rule: LinearRule, analysis: Mapping[str, Any]) -> Metric | None:
    value = _num(lookup_path(analysis, rule.path))
    if not value:
        return None
    display = f"{value:g} {rule.unit}".strip()
    return Metric(
        label=rule.label,
        patient_display=display,
        normal_display=rule.normal_display,
        patient_percent=_linear_percent(value, rule),
        normal_percent=_linear_percent(rule.normal_value, rule),
    )


def extract_metrics(
    modality: ModalityKind | str,
    analysis: Mapping[str, Any] | None,
    tables: MetricTables | None = None,
) -> list[Metric]:
    """Map one modality's qualitative analysis onto patient-vs-normal metrics.

    A missing indicator or a value outside the table omits the metric; it is
    never emitted as a 0% reading.
    """
    modality = parse_modality(modality)
    if not isinstance(analysis, Mapping) or not analysis:
        return []
    tables = tables or load_metric_tables()

    metrics: list[Metric] = []
    for rule in tables.display_rules(modality):
        if isinstance(rule, LinearRule):
            metric = _linear_metric(rule, analysis)
        else:
            metric = _display_metric(rule, analysis)
        if metric is not None:
            metrics.append(metric)
    return metrics


# ---------------------------------------------------------------------------
# Overall score
# ---------------------------------------------------------------------------

def score_overall(analyses: Analyses, tables: MetricTables | None = None) -> OverallHealth:
    """Unweighted mean of the scoring-table contributions of present modalities.

    Returns ``score=0, factor_count=0`` when nothing contributed; callers must
    read that as insufficient data.
    """
    tables = tables or load_metric_tables()
    present = _normalize(analyses)

    total = 0
    count = 0
    for rule in tables.scoring:
        analysis = present.get(rule.modality)
        if analysis is None:
            continue
        key = _qualitative(lookup_path(analysis, rule.path))
        if key is None:
            continue
        total += rule.values.get(key, rule.otherwise)
        count += 1

    score = round_half_up(total / count) if count else 0
    return OverallHealth(score=score, level=level_for_score(score), factor_count=count)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

NON_COMEDOGENIC = "Consider using non-comedogenic skincare products"
STRESS_MANAGEMENT = "Practice stress management techniques like meditation"
EYE_CARE_OK = "Continue good eye care habits"
SCREEN_BREAKS = "Take more frequent screen breaks"
TCM_CONSULT = "Consider traditional Chinese medicine consultation"
HYDRATE_SKIN = "Increase water intake and use moisturizer"
MORE_PROTEIN = "Consider increasing protein intake"
DEEP_BREATHING = "Practice deep breathing exercises daily"

GENERAL_RECOMMENDATIONS = (
    "Maintain regular exercise routine",
    "Get 7-9 hours of sleep nightly",
    "Eat a balanced diet rich in fruits and vegetables",
)


def _entries(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, Mapping)]


def _has_condition(entries: Any, key: str, name: str) -> bool:
    return any(_qualitative(e.get(key)) == name for e in _entries(entries))


def _face_rules(a: Mapping[str, Any]) -> Iterable[str]:
    if _has_condition(a.get("skinConditions"), "condition", "acne"):
        yield NON_COMEDOGENIC
    if _qualitative(lookup_path(a, "healthIndicators.stressLevel")) in ("moderate", "high"):
        yield STRESS_MANAGEMENT


def _eyes_rules(a: Mapping[str, Any]) -> Iterable[str]:
    level = _qualitative(lookup_path(a, "fatigueDetection.level"))
    if level == "low":
        yield EYE_CARE_OK
    else:
        yield SCREEN_BREAKS


def _tongue_rules(a: Mapping[str, Any]) -> Iterable[str]:
    qi = _qualitative(lookup_path(a, "tcmIndicators.qi"))
    if qi is not None and qi != "balanced":
        yield TCM_CONSULT


def _skin_rules(a: Mapping[str, Any]) -> Iterable[str]:
    if _has_condition(a.get("conditions"), "type", "acne"):
        yield NON_COMEDOGENIC
    level = _qualitative(lookup_path(a, "hydration.level"))
    if level is not None and level != "adequate":
        yield HYDRATE_SKIN


def _nails_rules(a: Mapping[str, Any]) -> Iterable[str]:
    protein = _qualitative(lookup_path(a, "nutritionalIndicators.protein"))
    if protein is not None and protein != "adequate":
        yield MORE_PROTEIN


def _audio_rules(a: Mapping[str, Any]) -> Iterable[str]:
    efficiency = _qualitative(lookup_path(a, "breathingPatterns.efficiency"))
    if efficiency is not None and efficiency != "good":
        yield DEEP_BREATHING


_RULES = {
    ModalityKind.FACE: _face_rules,
    ModalityKind.EYES: _eyes_rules,
    ModalityKind.TONGUE: _tongue_rules,
    ModalityKind.SKIN: _skin_rules,
    ModalityKind.NAILS: _nails_rules,
    ModalityKind.AUDIO: _audio_rules,
}


def build_recommendations(analyses: Analyses) -> list[str]:
    """Apply the fixed per-modality rules, then append the general advice."""
    present = _normalize(analyses)
    collected: list[str] = []
    for modality in MODALITY_ORDER:
        analysis = present.get(modality)
        if analysis is not None:
            collected.extend(_RULES[modality](analysis))
    collected.extend(GENERAL_RECOMMENDATIONS)
    return unique_in_order(collected)
