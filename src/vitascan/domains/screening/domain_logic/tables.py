"""Loader for the canonical metric tables (``metric_tables.yaml``)."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from vitascan.domains.screening.models import ModalityKind, parse_modality

logger = logging.getLogger(__name__)

DEFAULT_TABLE_PATH = Path(__file__).resolve().parent / "metric_tables.yaml"


class TableConfigError(Exception):
    """Raised when a metric table file is missing or malformed."""


@dataclass(frozen=True)
class DisplayRule:
    """Qualitative comparison row: value -> percent of the track."""

    label: str
    path: str
    normal_display: str
    normal_percent: int
    values: Mapping[str, int]


@dataclass(frozen=True)
class LinearRule:
    """Numeric comparison row mapped linearly onto ``[low, high]``."""

    label: str
    path: str
    normal_display: str
    low: float
    high: float
    normal_value: float
    unit: str = ""


MetricRule = Union[DisplayRule, LinearRule]


@dataclass(frozen=True)
class ScoreRule:
    """One overall-score contribution."""

    modality: ModalityKind
    path: str
    values: Mapping[str, int]
    otherwise: int


@dataclass(frozen=True)
class MetricTables:
    display: Mapping[ModalityKind, tuple[MetricRule, ...]]
    scoring: tuple[ScoreRule, ...]
    trend: Mapping[str, Mapping[str, int]]

    def display_rules(self, modality: ModalityKind) -> tuple[MetricRule, ...]:
        return self.display.get(modality, ())


def lookup_path(data: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings; ``None`` when any hop is missing."""
    current = data
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current


def _value_map(raw: Any, where: str) -> dict[str, int]:
    if not isinstance(raw, Mapping) or not raw:
        raise TableConfigError(f"{where}: 'values' must be a non-empty mapping")
    try:
        return {str(k).lower(): int(v) for k, v in raw.items()}
    except (TypeError, ValueError) as exc:
        raise TableConfigError(f"{where}: values must be integers ({exc})") from exc


def _parse_display_rule(raw: Mapping[str, Any], where: str) -> MetricRule:
    try:
        if raw.get("kind") == "linear":
            low, high = float(raw["low"]), float(raw["high"])
            if high <= low:
                raise TableConfigError(f"{where}: 'high' must exceed 'low'")
            return LinearRule(
                label=str(raw["label"]),
                path=str(raw["path"]),
                normal_display=str(raw.get("normal_display", "")),
                low=low,
                high=high,
                normal_value=float(raw["normal_value"]),
                unit=str(raw.get("unit", "")),
            )
        return DisplayRule(
            label=str(raw["label"]),
            path=str(raw["path"]),
            normal_display=str(raw.get("normal_display", "")),
            normal_percent=int(raw.get("normal_percent", 85)),
            values=_value_map(raw.get("values"), where),
        )
    except KeyError as exc:
        raise TableConfigError(f"{where}: missing field {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise TableConfigError(f"{where}: {exc}") from exc


def parse_metric_tables(data: Any) -> MetricTables:
    """Validate a parsed YAML document into :class:`MetricTables`."""
    if not isinstance(data, Mapping):
        raise TableConfigError("Metric table document must be a mapping")

    display: dict[ModalityKind, tuple[MetricRule, ...]] = {}
    for key, rows in (data.get("display") or {}).items():
        try:
            modality = parse_modality(key)
        except ValueError as exc:
            raise TableConfigError(str(exc)) from exc
        if not isinstance(rows, list):
            raise TableConfigError(f"display.{key} must be a list")
        display[modality] = tuple(
            _parse_display_rule(row, f"display.{key}[{i}]") for i, row in enumerate(rows)
        )

    scoring: list[ScoreRule] = []
    for i, row in enumerate(data.get("scoring") or []):
        where = f"scoring[{i}]"
        try:
            scoring.append(
                ScoreRule(
                    modality=parse_modality(row["modality"]),
                    path=str(row["path"]),
                    values=_value_map(row.get("values"), where),
                    otherwise=int(row.get("otherwise", 0)),
                )
            )
        except KeyError as exc:
            raise TableConfigError(f"{where}: missing field {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise TableConfigError(f"{where}: {exc}") from exc

    trend = {
        str(name): _value_map(values, f"trend.{name}")
        for name, values in (data.get("trend") or {}).items()
    }

    return MetricTables(display=display, scoring=tuple(scoring), trend=trend)


def load_metric_tables(path: str | Path | None = None) -> MetricTables:
    """Load metric tables from ``path``, or the bundled defaults when empty."""
    if not path:
        return _load_default()
    return _load_file(Path(path).expanduser())


@functools.lru_cache(maxsize=1)
def _load_default() -> MetricTables:
    return _load_file(DEFAULT_TABLE_PATH)


def _load_file(path: Path) -> MetricTables:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise TableConfigError(f"Cannot read metric tables {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise TableConfigError(f"Invalid YAML in {path}: {exc}") from exc
    tables = parse_metric_tables(data)
    logger.info(
        "Loaded metric tables from %s (%d display modalities, %d scoring rules)",
        path,
        len(tables.display),
        len(tables.scoring),
    )
    return tables
