"""Tests for health-history trend lines."""

from __future__ import annotations

from vitascan.domains.screening.domain_logic.trends import compute_health_trends


def _entry(timestamp: str, **analysis_results):
    return {"timestamp": timestamp, "analysisResults": analysis_results, "type": "health_check"}


def test_empty_history():
    assert compute_health_trends([]) == {
        "stressLevel": [],
        "sleepQuality": [],
        "hydration": [],
        "overallHealth": [],
    }


def test_face_indicator_series():
    history = [
        _entry("2026-01-01T08:00:00+00:00", face={"healthIndicators": {"stressLevel": "high", "hydration": "fair"}}),
        _entry("2026-01-08T08:00:00+00:00", face={"healthIndicators": {"stressLevel": "Low", "sleepQuality": "good"}}),
    ]
    trends = compute_health_trends(history)
    assert trends["stressLevel"] == [{"date": "2026-01-01", "value": 3}, {"date": "2026-01-08", "value": 1}]
    assert trends["sleepQuality"] == [{"date": "2026-01-08", "value": 3}]
    assert trends["hydration"] == [{"date": "2026-01-01", "value": 2}]


def test_overall_uses_consolidated_score():
    history = [
        _entry("2026-01-01T08:00:00Z", face={"healthIndicators": {"hydration": "good"}}),
        _entry("2026-01-02T08:00:00Z", eyes={"eyeHealth": {"overall": "fair"}}, nails={"nailHealth": {"strength": "good"}}),
    ]
    trends = compute_health_trends(history)
    # 85; then (75 + 89) / 2 = 82
    assert trends["overallHealth"] == [{"date": "2026-01-01", "value": 85}, {"date": "2026-01-02", "value": 82}]


def test_entries_without_scorable_data_are_skipped():
    history = [
        _entry("2026-01-01T08:00:00Z", face={}),
        {"timestamp": "2026-01-02T08:00:00Z", "analysisResults": "garbage"},
        {"timestamp": "2026-01-03T08:00:00Z"},
    ]
    trends = compute_health_trends(history)
    assert trends["overallHealth"] == []
    assert trends["stressLevel"] == []


def test_unknown_ordinal_value_maps_to_zero():
    history = [_entry("2026-01-01T08:00:00Z", face={"healthIndicators": {"stressLevel": "extreme"}})]
    assert compute_health_trends(history)["stressLevel"] == [{"date": "2026-01-01", "value": 0}]
