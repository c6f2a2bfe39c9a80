"""Screening data model: modalities, samples, analyses, metrics and reports."""

from __future__ import annotations

import base64
import binascii
import copy
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Modalities
# ---------------------------------------------------------------------------

class ModalityKind(str, enum.Enum):
    """One capture channel. Declaration order is the canonical report order."""

    FACE = "face"
    EYES = "eyes"
    TONGUE = "tongue"
    SKIN = "skin"
    NAILS = "nails"
    AUDIO = "audio"

    def __str__(self) -> str:
        return self.value

    @property
    def is_image(self) -> bool:
        return self is not ModalityKind.AUDIO


MODALITY_ORDER: tuple[ModalityKind, ...] = tuple(ModalityKind)
IMAGE_MODALITIES: tuple[ModalityKind, ...] = tuple(m for m in ModalityKind if m.is_image)


def parse_modality(value: ModalityKind | str) -> ModalityKind:
    """Validate a modality name against the fixed set."""
    if isinstance(value, ModalityKind):
        return value
    try:
        return ModalityKind(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in ModalityKind)
        raise ValueError(f"Unsupported modality: {value!r} (expected one of: {allowed})") from None


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Sample:
    """One binary capture (image or audio) plus its MIME type."""

    mime_type: str
    data: bytes = field(repr=False)

    @property
    def is_image(self) -> bool:
        return self.mime_type.lower().startswith("image/")

    @property
    def is_audio(self) -> bool:
        return self.mime_type.lower().startswith("audio/")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_base64(cls, data: str, mime_type: str) -> Sample | None:
        """Decode a base64 payload (plain or data URL). Empty input means no sample."""
        data = (data or "").strip()
        if not data:
            return None
        if data.startswith("data:") and "," in data:
            header, data = data.split(",", 1)
            declared = header[5:].split(";", 1)[0]
            mime_type = declared or mime_type
        # MIME-wrapped base64 carries line breaks
        data = "".join(data.split())
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"Sample is not valid base64: {exc}") from exc
        if not raw:
            return None
        return cls(mime_type=mime_type, data=raw)


# ---------------------------------------------------------------------------
# Per-modality analysis
# ---------------------------------------------------------------------------

SOURCE_NONE = "none"
SOURCE_ERROR = "error"


@dataclass
class AnalysisResult:
    """Outcome of analysing one modality.

    ``analysis`` is the loosely-typed, modality-shaped mapping returned by the
    provider, or ``{}``. ``source`` is the provider name on success, ``none``
    when nothing was analysed and ``error`` when the provider call failed.
    """

    modality: ModalityKind
    analysis: dict[str, Any] = field(default_factory=dict)
    source: str = SOURCE_NONE
    sample_provided: bool = False

    @property
    def success(self) -> bool:
        # Modality-level failures are absorbed; the call itself always succeeds.
        return True

    @property
    def is_empty(self) -> bool:
        return not self.analysis

    @classmethod
    def empty(
        cls, modality: ModalityKind, source: str = SOURCE_NONE, sample_provided: bool = False
    ) -> AnalysisResult:
        return cls(modality=modality, analysis={}, source=source, sample_provided=sample_provided)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "analysis": copy.deepcopy(self.analysis),
            "meta": {"source": self.source},
        }


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Metric:
    """One patient-vs-normal comparison row."""

    label: str
    patient_display: str
    normal_display: str
    patient_percent: int
    normal_percent: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "patientDisplayValue": self.patient_display,
            "normalDisplayValue": self.normal_display,
            "patientPercent": self.patient_percent,
            "normalPercent": self.normal_percent,
        }


HEALTH_LEVELS = ("excellent", "good", "fair", "needs_attention")


def level_for_score(score: int) -> str:
    """Map a 0-100 score to a health level."""
    if score >= 85:
        return "excellent"
    if score >= 75:
        return "good"
    if score >= 65:
        return "fair"
    return "needs_attention"


@dataclass(frozen=True)
class OverallHealth:
    """Aggregate score. ``factor_count == 0`` means insufficient data, not poor health."""

    score: int
    level: str
    factor_count: int

    @property
    def insufficient_data(self) -> bool:
        return self.factor_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "level": self.level, "factors": self.factor_count}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OverallHealth:
        score = max(0, min(100, int(round(float(data.get("score", 0) or 0)))))
        level = str(data.get("level") or "")
        if level not in HEALTH_LEVELS:
            level = level_for_score(score)
        factors = int(data.get("factors", data.get("factorCount", 0)) or 0)
        return cls(score=score, level=level, factor_count=factors)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"Invalid report timestamp: {value!r}") from exc
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Invalid report timestamp: {value!r}")


@dataclass(frozen=True)
class Report:
    """Aggregate root of one analysis run. Immutable after assembly."""

    timestamp: datetime
    analyses: Mapping[ModalityKind, Mapping[str, Any]]
    overall_health: OverallHealth | None = None
    recommendations: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        ordered = {
            m: MappingProxyType(copy.deepcopy(dict(self.analyses[m])))
            for m in MODALITY_ORDER
            if m in self.analyses
        }
        object.__setattr__(self, "analyses", MappingProxyType(ordered))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))

    @property
    def present_modalities(self) -> list[ModalityKind]:
        return list(self.analyses)

    @property
    def image_count(self) -> int:
        return sum(1 for m in IMAGE_MODALITIES if m in self.analyses)

    @property
    def audio_count(self) -> int:
        return 1 if ModalityKind.AUDIO in self.analyses else 0

    def analyses_dict(self) -> dict[str, dict[str, Any]]:
        """Plain, mutable copy of the analyses keyed by modality name."""
        return {m.value: copy.deepcopy(dict(a)) for m, a in self.analyses.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "analyses": self.analyses_dict(),
            "overallHealth": self.overall_health.to_dict() if self.overall_health else None,
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Report:
        """Rebuild a report from its JSON shape (e.g. a client-held copy)."""
        if not isinstance(data, Mapping):
            raise ValueError("Report payload must be an object")
        raw_ts = data.get("timestamp")
        timestamp = parse_timestamp(raw_ts) if raw_ts not in (None, "") else datetime.now(timezone.utc)

        raw_analyses = data.get("analyses") or {}
        if not isinstance(raw_analyses, Mapping):
            raise ValueError("Report 'analyses' must be an object")
        analyses: dict[ModalityKind, dict[str, Any]] = {}
        for key, value in raw_analyses.items():
            try:
                modality = parse_modality(key)
            except ValueError:
                logger.warning("Ignoring unknown modality %r in report payload", key)
                continue
            if value is None:
                continue
            if not isinstance(value, Mapping):
                raise ValueError(f"Analysis for {modality.value!r} must be an object")
            analyses[modality] = dict(value)

        raw_overall = data.get("overallHealth")
        overall = OverallHealth.from_dict(raw_overall) if isinstance(raw_overall, Mapping) else None

        recommendations = unique_in_order(str(r) for r in (data.get("recommendations") or []) if r)
        return cls(
            timestamp=timestamp,
            analyses=analyses,
            overall_health=overall,
            recommendations=tuple(recommendations),
        )


def unique_in_order(items: Iterable[str]) -> list[str]:
    """Drop exact duplicates, keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
