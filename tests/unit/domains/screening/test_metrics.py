"""Tests for metric extraction, overall scoring and recommendations."""

from __future__ import annotations

import math

import pytest

from vitascan.domains.screening.domain_logic.metrics import (
    DEEP_BREATHING,
    EYE_CARE_OK,
    GENERAL_RECOMMENDATIONS,
    HYDRATE_SKIN,
    MORE_PROTEIN,
    NON_COMEDOGENIC,
    SCREEN_BREAKS,
    STRESS_MANAGEMENT,
    TCM_CONSULT,
    build_recommendations,
    clamp_percent,
    extract_metrics,
    score_overall,
)


def _by_label(metrics):
    return {m.label: m for m in metrics}


class TestExtractMetrics:
    def test_face_indicators(self):
        analysis = {"healthIndicators": {"hydration": "good", "stressLevel": "moderate", "sleepQuality": "adequate"}}
        metrics = _by_label(extract_metrics("face", analysis))
        assert [
            (m.patient_percent, m.normal_percent)
            for m in (metrics["Hydration"], metrics["Stress Level"], metrics["Sleep Quality"])
        ] == [(85, 85), (60, 85), (70, 85)]
        assert metrics["Stress Level"].patient_display == "moderate"

    def test_heart_rate_at_baseline(self):
        metrics = extract_metrics("audio", {"heartRate": {"bpm": 75}})
        assert len(metrics) == 1
        heart = metrics[0]
        assert heart.label == "Heart Rate"
        assert heart.patient_percent == 44
        assert heart.normal_percent == 44
        assert heart.patient_display == "75 bpm"

    @pytest.mark.parametrize("bpm,percent", [(20, 0), (40, 0), (120, 100), (200, 100), (80, 50)])
    def test_heart_rate_is_clamped(self, bpm, percent):
        assert extract_metrics("audio", {"heartRate": {"bpm": bpm}})[0].patient_percent == percent

    @pytest.mark.parametrize("bpm", [0, None, "fast", float("nan")])
    def test_heart_rate_missing_or_invalid_is_omitted(self, bpm):
        assert extract_metrics("audio", {"heartRate": {"bpm": bpm}}) == []

    def test_missing_indicator_is_omitted(self):
        metrics = extract_metrics("face", {"healthIndicators": {"hydration": "fair"}})
        assert [m.label for m in metrics] == ["Hydration"]

    def test_unrecognized_value_is_omitted(self):
        metrics = extract_metrics("eyes", {"eyeHealth": {"overall": "superb", "redness": "none"}})
        assert [m.label for m in metrics] == ["Redness"]

    def test_values_match_case_insensitively(self):
        metrics = extract_metrics("nails", {"nailHealth": {"strength": "Good"}})
        assert metrics[0].patient_percent == 90

    def test_missing_or_empty_analysis(self):
        assert extract_metrics("skin", None) == []
        assert extract_metrics("skin", {}) == []

    def test_odd_types_never_raise(self):
        assert extract_metrics("skin", {"hydration": "wet", "texture": ["smooth"]}) == []

    def test_unknown_modality_raises(self):
        with pytest.raises(ValueError):
            extract_metrics("hair", {})


class TestClampPercent:
    @pytest.mark.parametrize(
        "value,expected",
        [(-5, 0), (0, 0), (43.75, 44), (42.5, 43), (100, 100), (250, 100), (math.inf, 0), (math.nan, 0)],
    )
    def test_clamp(self, value, expected):
        assert clamp_percent(value) == expected


class TestScoreOverall:
    def test_no_analyses_is_insufficient_data(self):
        overall = score_overall({})
        assert (overall.score, overall.level, overall.factor_count) == (0, "needs_attention", 0)
        assert overall.insufficient_data

    def test_empty_modality_contributes_nothing(self):
        assert score_overall({"face": {}}).factor_count == 0

    def test_single_factor(self):
        overall = score_overall({"face": {"healthIndicators": {"hydration": "good"}}})
        assert (overall.score, overall.factor_count, overall.level) == (85, 1, "excellent")

    def test_mean_of_factors_rounds_half_up(self):
        analyses = {
            "face": {"healthIndicators": {"hydration": "poor"}},  # 70
            "eyes": {"eyeHealth": {"overall": "good"}},  # 90
            "tongue": {"tcmIndicators": {"qi": "excess"}},  # 72
            "nails": {"nailHealth": {"strength": "good"}},  # 89
        }
        overall = score_overall(analyses)
        assert overall.factor_count == 4
        assert overall.score == 80  # 321 / 4 = 80.25
        assert overall.level == "good"

    def test_all_six_modalities(self):
        analyses = {
            "face": {"healthIndicators": {"hydration": "good"}},
            "eyes": {"eyeHealth": {"overall": "good"}},
            "tongue": {"tcmIndicators": {"qi": "balanced"}},
            "skin": {"hydration": {"level": "adequate"}},
            "nails": {"nailHealth": {"strength": "good"}},
            "audio": {"breathingPatterns": {"efficiency": "good"}},
        }
        overall = score_overall(analyses)
        assert overall.factor_count == 6
        assert overall.score == 88  # 525 / 6 = 87.5


class TestRecommendations:
    def test_general_advice_always_last(self):
        assert build_recommendations({}) == list(GENERAL_RECOMMENDATIONS)

    def test_face_rules(self):
        recs = build_recommendations({
            "face": {
                "skinConditions": [{"condition": "acne"}],
                "healthIndicators": {"stressLevel": "high"},
            }
        })
        assert recs[:2] == [NON_COMEDOGENIC, STRESS_MANAGEMENT]

    def test_low_stress_gives_no_stress_advice(self):
        recs = build_recommendations({"face": {"healthIndicators": {"stressLevel": "low"}}})
        assert STRESS_MANAGEMENT not in recs

    def test_eye_fatigue(self):
        assert EYE_CARE_OK in build_recommendations({"eyes": {"fatigueDetection": {"level": "low"}}})
        assert SCREEN_BREAKS in build_recommendations({"eyes": {"fatigueDetection": {"level": "high"}}})
        no_level = build_recommendations({"eyes": {"eyeHealth": {"overall": "good"}}})
        assert SCREEN_BREAKS in no_level and EYE_CARE_OK not in no_level
        assert SCREEN_BREAKS in build_recommendations({"eyes": {}})

    def test_tongue_skin_nails_audio_rules(self):
        recs = build_recommendations({
            "tongue": {"tcmIndicators": {"qi": "deficient"}},
            "skin": {"hydration": {"level": "low"}},
            "nails": {"nutritionalIndicators": {"protein": "low"}},
            "audio": {"breathingPatterns": {"efficiency": "poor"}},
        })
        assert recs == [TCM_CONSULT, HYDRATE_SKIN, MORE_PROTEIN, DEEP_BREATHING, *GENERAL_RECOMMENDATIONS]

    def test_healthy_values_add_nothing(self):
        recs = build_recommendations({
            "tongue": {"tcmIndicators": {"qi": "balanced"}},
            "skin": {"hydration": {"level": "adequate"}},
            "nails": {"nutritionalIndicators": {"protein": "adequate"}},
            "audio": {"breathingPatterns": {"efficiency": "good"}},
        })
        assert recs == list(GENERAL_RECOMMENDATIONS)

    def test_acne_advice_appears_once(self):
        recs = build_recommendations({
            "face": {"skinConditions": [{"condition": "acne"}]},
            "skin": {"conditions": [{"type": "acne"}, {"type": "acne", "severity": "mild"}]},
        })
        assert recs.count(NON_COMEDOGENIC) == 1
        assert len(recs) == len(set(recs))

    def test_odd_types_never_raise(self):
        recs = build_recommendations({
            "face": {"skinConditions": "acne", "healthIndicators": None},
            "skin": {"conditions": [None, 3, {"type": None}]},
            "nails": [],
        })
        assert recs == list(GENERAL_RECOMMENDATIONS)
