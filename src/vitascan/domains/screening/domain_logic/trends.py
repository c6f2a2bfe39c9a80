"""Health-history trend lines for a user's past screening results."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from vitascan.domains.screening.domain_logic.metrics import score_overall
from vitascan.domains.screening.domain_logic.tables import (
    MetricTables,
    load_metric_tables,
    lookup_path,
)

logger = logging.getLogger(__name__)

# trend name -> path inside the face analysis
_FACE_TRENDS = {
    "stressLevel": "healthIndicators.stressLevel",
    "sleepQuality": "healthIndicators.sleepQuality",
    "hydration": "healthIndicators.hydration",
}


def _entry_date(entry: Mapping[str, Any]) -> str:
    timestamp = str(entry.get("timestamp") or "")
    return timestamp.split("T", 1)[0]


def compute_health_trends(
    history: Iterable[Mapping[str, Any]],
    tables: MetricTables | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Build ``{date, value}`` series from history entries (oldest first).

    The face indicators use the ordinal ``trend`` scales (1-3); the overall
    line reuses :func:`score_overall` and skips entries with no scorable data.
    """
    tables = tables or load_metric_tables()
    trends: dict[str, list[dict[str, Any]]] = {name: [] for name in _FACE_TRENDS}
    trends["overallHealth"] = []

    for entry in history:
        date = _entry_date(entry)
        results = entry.get("analysisResults") or {}
        if not isinstance(results, Mapping):
            continue

        face = results.get("face")
        for name, path in _FACE_TRENDS.items():
            raw = lookup_path(face, path)
            if not isinstance(raw, str) or not raw:
                continue
            scale = tables.trend.get(name, {})
            trends[name].append({"date": date, "value": scale.get(raw.lower(), 0)})

        overall = score_overall(results, tables)
        if overall.factor_count:
            trends["overallHealth"].append({"date": date, "value": overall.score})

    return trends
