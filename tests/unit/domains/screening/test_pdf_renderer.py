"""Tests for the PDF report renderer."""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from vitascan.domains.screening.domain_logic.assembler import build_report
from vitascan.domains.screening.models import ModalityKind, OverallHealth, Report
from vitascan.domains.screening.rendering import pdf_renderer
from vitascan.domains.screening.rendering.pdf_renderer import (
    NO_METRICS_TEXT,
    PdfReportRenderer,
    RenderingError,
    bar_fill_width,
    report_id,
    report_kpis,
    to_base36,
)

_TS = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def renderer() -> PdfReportRenderer:
    # Uncompressed so drawn strings are visible in the content streams.
    return PdfReportRenderer(compress=False)


def _kpi(kpis, label):
    return dict(kpis)[label]


class TestBarWidth:
    @pytest.mark.parametrize(
        "percent,expected",
        [(0, 0.0), (50, 100.0), (100, 200.0), (-20, 0.0), (150, 200.0), (math.nan, 0.0), (math.inf, 0.0), (-math.inf, 0.0)],
    )
    def test_clamped_to_track(self, percent, expected):
        assert bar_fill_width(percent, 200) == expected

    @pytest.mark.parametrize("track", [0, -10, math.nan, math.inf])
    def test_invalid_track_raises(self, track):
        with pytest.raises(RenderingError):
            bar_fill_width(50, track)


class TestReportId:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_derived_from_timestamp(self):
        report = Report(timestamp=_TS, analyses={})
        assert report_id(report) == to_base36(1772366400000).upper()


class TestKpis:
    def test_counts_present_modalities(self):
        report = Report(
            timestamp=_TS,
            analyses={ModalityKind.FACE: {}, ModalityKind.NAILS: {}, ModalityKind.AUDIO: {}},
        )
        kpis = report_kpis(report)
        assert [label for label, _ in kpis] == ["Images Analyzed", "Audio Samples", "AI Models Used", "Avg Accuracy"]
        assert _kpi(kpis, "Images Analyzed") == "2"
        assert _kpi(kpis, "Audio Samples") == "1"


class TestRender:
    def test_empty_report(self, renderer):
        report = build_report({}, timestamp=_TS)
        document = renderer.render_document(report)
        assert document.content.startswith(b"%PDF")
        assert document.page_count == 1
        assert _kpi(document.kpis, "Images Analyzed") == "0"
        assert b"(Images Analyzed)" in document.content
        assert b"(Overall score: 0 / 100)" in document.content
        assert b"(Level: Needs Attention)" in document.content
        assert b"Analysis)" not in document.content  # no modality cards

    def test_sections_and_rows(self, renderer):
        report = build_report(
            {
                "face": {"healthIndicators": {"hydration": "good", "stressLevel": "moderate"}},
                "audio": {"heartRate": {"bpm": 75}},
                "tongue": {},
            },
            timestamp=_TS,
        )
        content = renderer.render(report)
        assert b"(Face Analysis)" in content
        assert b"(Tongue Analysis)" in content
        assert b"(Audio Analysis)" in content
        assert b"(You: good)" in content
        assert b"(You: 75 bpm)" in content
        assert NO_METRICS_TEXT.encode() in content
        assert f"Report ID: {report_id(report)}".encode() in content
        assert b"Generated by AI Health Analysis System" in content

    def test_no_overall_block_without_score(self, renderer):
        content = renderer.render(Report(timestamp=_TS, analyses={}))
        assert b"Overall score" not in content

    def test_long_recommendations_paginate(self, renderer):
        recommendations = tuple(
            f"Recommendation number {i}: " + "keep a steady routine and review it with a clinician " * 3
            for i in range(60)
        )
        report = Report(
            timestamp=_TS,
            analyses={},
            overall_health=OverallHealth(80, "good", 3),
            recommendations=recommendations,
        )
        document = renderer.render_document(report)
        assert document.page_count > 1
        assert b"(1. Recommendation number 0: keep a steady" in document.content

    def test_compressed_output_is_smaller(self):
        report = build_report({"face": {"healthIndicators": {"hydration": "good"}}}, timestamp=_TS)
        compressed = PdfReportRenderer().render(report)
        plain = PdfReportRenderer(compress=False).render(report)
        assert compressed.startswith(b"%PDF")
        assert len(compressed) < len(plain)

    def test_renderer_is_reusable(self, renderer):
        report = build_report({"eyes": {"eyeHealth": {"overall": "fair"}}}, timestamp=_TS)
        first = renderer.render_document(report)
        second = renderer.render_document(report)
        assert first.page_count == second.page_count == 1

    def test_drawing_failure_raises_rendering_error(self, renderer, monkeypatch):
        def _boom(*args, **kwargs):
            raise RuntimeError("font exploded")

        monkeypatch.setattr(pdf_renderer, "extract_metrics", _boom)
        report = Report(timestamp=_TS, analyses={ModalityKind.FACE: {}})
        with pytest.raises(RenderingError, match="font exploded"):
            renderer.render(report)
