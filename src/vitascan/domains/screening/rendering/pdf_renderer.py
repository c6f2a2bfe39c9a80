"""Paginated PDF rendering of a screening Report (ReportLab canvas).

Layout coordinates are kept top-down (``y`` grows towards the bottom of the
page) and converted to PDF space only when drawing.
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from vitascan.domains.screening.domain_logic.metrics import extract_metrics
from vitascan.domains.screening.domain_logic.tables import MetricTables, load_metric_tables
from vitascan.domains.screening.models import Metric, ModalityKind, Report

logger = logging.getLogger(__name__)


class RenderingError(Exception):
    """Raised when a report cannot be drawn. No partial document is returned."""


# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

TITLE = "Health Analysis Report"
SUBTITLE = "AI-Powered Medical Insights"
FOOTER_LINE = "Generated by AI Health Analysis System"
DISCLAIMER = (
    "This report is for informational purposes only. "
    "Consult healthcare professionals for medical advice."
)
NO_METRICS_TEXT = "No measurable indicators returned."

LEVEL_LABELS = {
    "excellent": "Excellent",
    "good": "Good",
    "fair": "Fair",
    "needs_attention": "Needs Attention",
}

SECTION_COLORS = {
    ModalityKind.FACE: "#3b82f6",
    ModalityKind.EYES: "#10b981",
    ModalityKind.TONGUE: "#f59e0b",
    ModalityKind.SKIN: "#06b6d4",
    ModalityKind.NAILS: "#8b5cf6",
    ModalityKind.AUDIO: "#ef4444",
}

HEADER_COLOR = "#667eea"
CARD_BORDER = "#e5e7eb"
TEXT_DARK = "#111827"
TEXT_BODY = "#374151"
TEXT_MUTED = "#6b7280"
BAR_TRACK = "#f1f5f9"
BAR_FILL = "#6366f1"
NORMAL_TICK = "#10b981"
RECOMMENDATION_COLOR = "#f59e0b"

HEADER_HEIGHT = 100
KPI_WIDTH = 120
KPI_HEIGHT = 60
KPI_GAP = 130
KPI_COLORS = ("#3b82f6", "#10b981", "#8b5cf6", "#f59e0b")
SECTION_TITLE_HEIGHT = 30
LABEL_WIDTH = 110
BAR_HEIGHT = 8
ROW_HEIGHT = 36
LINE_HEIGHT = 15
FOOTER_HEIGHT = 40


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def report_kpis(report: Report) -> list[tuple[str, str]]:
    """KPI cards shown under the header, as ``(label, value)`` pairs."""
    return [
        ("Images Analyzed", str(report.image_count)),
        ("Audio Samples", str(report.audio_count)),
        ("AI Models Used", "5"),
        ("Avg Accuracy", "85%"),
    ]


def bar_fill_width(percent: float, track_width: float) -> float:
    """Width of a bar filled to ``percent`` of the track, clamped to the track."""
    if not isinstance(track_width, (int, float)) or not math.isfinite(track_width) or track_width <= 0:
        raise RenderingError(f"Invalid track width: {track_width!r}")
    try:
        value = float(percent)
    except (TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value):
        value = 0.0
    return max(0.0, min(float(track_width), value / 100.0 * track_width))


_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(number: int) -> str:
    if number < 0:
        return "-" + to_base36(-number)
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def report_id(report: Report) -> str:
    """Stable ID derived from the report timestamp (epoch ms, base36, upper)."""
    millis = int(report.timestamp.timestamp() * 1000)
    return to_base36(millis).upper()


def section_title(modality: ModalityKind) -> str:
    return f"{modality.value.capitalize()} Analysis"


@dataclass
class RenderedDocument:
    """Rendered PDF bytes plus a few facts about the layout."""

    content: bytes
    page_count: int
    kpis: list[tuple[str, str]]


# ---------------------------------------------------------------------------
# Drawing session (one per render call)
# ---------------------------------------------------------------------------

class _RenderSession:
    def __init__(
        self,
        page_size: tuple[float, float],
        margin: float,
        bottom_threshold: float,
        compress: bool,
    ) -> None:
        self.buffer = io.BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=page_size, pageCompression=1 if compress else 0)
        self.canvas.setTitle(TITLE)
        self.page_width, self.page_height = page_size
        self.margin = margin
        self.bottom_threshold = bottom_threshold
        self.content_width = self.page_width - 2 * margin
        self.y = margin
        self.page_count = 1

    # -- cursor ------------------------------------------------------------

    def _pdf_y(self, y: float) -> float:
        return self.page_height - y

    def new_page(self) -> None:
        self.canvas.showPage()
        self.page_count += 1
        self.y = self.margin

    def ensure_space(self, height: float) -> None:
        if self.y + height > self.page_height - self.bottom_threshold:
            self.new_page()

    # -- primitives --------------------------------------------------------

    def text(self, x: float, y: float, value: str, size: float, color: str, bold: bool = False) -> None:
        c = self.canvas
        c.setFont("Helvetica-Bold" if bold else "Helvetica", size)
        c.setFillColor(colors.HexColor(color))
        # y is the top of the line; drawString takes the baseline
        c.drawString(x, self._pdf_y(y + size), value)

    def text_right(self, x: float, y: float, value: str, size: float, color: str) -> None:
        c = self.canvas
        c.setFont("Helvetica", size)
        c.setFillColor(colors.HexColor(color))
        c.drawRightString(x, self._pdf_y(y + size), value)

    def rounded_box(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        radius: float,
        fill: str,
        stroke: str | None = None,
    ) -> None:
        c = self.canvas
        c.setFillColor(colors.HexColor(fill))
        if stroke:
            c.setStrokeColor(colors.HexColor(stroke))
            c.setLineWidth(0.5)
        c.roundRect(x, self._pdf_y(y + height), width, height, radius, fill=1, stroke=1 if stroke else 0)

    # -- sections ----------------------------------------------------------

    def draw_header(self, generated: datetime) -> None:
        x = self.margin
        self.rounded_box(x, self.y, self.content_width, HEADER_HEIGHT, 12, HEADER_COLOR)
        self.text(x + 20, self.y + 25, TITLE, 26, "#ffffff", bold=True)
        self.text(x + 20, self.y + 62, SUBTITLE, 13, "#ffffff")
        self.y += HEADER_HEIGHT + 6
        stamp = generated.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        self.text_right(self.page_width - self.margin, self.y, f"Generated: {stamp}", 9, TEXT_MUTED)
        self.y += 14

    def draw_kpis(self, kpis: list[tuple[str, str]]) -> None:
        self.ensure_space(KPI_HEIGHT)
        x = self.margin
        for index, (label, value) in enumerate(kpis):
            color = KPI_COLORS[index % len(KPI_COLORS)]
            self.rounded_box(x, self.y, KPI_WIDTH, KPI_HEIGHT, 8, "#ffffff", CARD_BORDER)
            self.canvas.setFillColor(colors.HexColor(color))
            self.canvas.circle(x + 16, self._pdf_y(self.y + 16), 7, stroke=0, fill=1)
            self.text(x + 8, self.y + 28, label, 9, TEXT_MUTED)
            self.text(x + 8, self.y + 40, value, 15, TEXT_DARK, bold=True)
            x += KPI_GAP
        self.y += KPI_HEIGHT + 20

    def draw_overall(self, report: Report) -> None:
        overall = report.overall_health
        if overall is None:
            return
        self.ensure_space(56)
        self.text(self.margin, self.y, "Overall Health", 14, TEXT_DARK, bold=True)
        self.text(self.margin, self.y + 20, f"Overall score: {overall.score} / 100", 11, TEXT_BODY)
        level = LEVEL_LABELS.get(overall.level, overall.level)
        self.text(self.margin, self.y + 36, f"Level: {level}", 11, TEXT_BODY)
        self.y += 60

    def draw_section(self, modality: ModalityKind, metrics: list[Metric]) -> None:
        color = SECTION_COLORS[modality]
        self.ensure_space(SECTION_TITLE_HEIGHT + ROW_HEIGHT)
        x = self.margin
        self.canvas.setFillColor(colors.HexColor(color))
        self.canvas.circle(x + 10, self._pdf_y(self.y + 10), 10, stroke=0, fill=1)
        self.text(x + 6, self.y + 4, modality.value[0].upper(), 11, "#ffffff", bold=True)
        self.text(x + 28, self.y + 2, section_title(modality), 16, color, bold=True)
        self.y += SECTION_TITLE_HEIGHT

        if not metrics:
            self.text(x + 16, self.y, NO_METRICS_TEXT, 10, TEXT_MUTED)
            self.y += ROW_HEIGHT - 10
            return
        for metric in metrics:
            self.ensure_space(ROW_HEIGHT)
            self.draw_metric_row(metric)
        self.y += 8

    def draw_metric_row(self, metric: Metric) -> None:
        x = self.margin + 16
        track_x = x + LABEL_WIDTH
        track_width = self.content_width - 32 - LABEL_WIDTH
        bar_y = self.y + 4

        self.text(x, self.y + 2, metric.label, 9, TEXT_BODY)
        self.rounded_box(track_x, bar_y, track_width, BAR_HEIGHT, BAR_HEIGHT / 2, BAR_TRACK)
        fill = bar_fill_width(metric.patient_percent, track_width)
        if fill > 0:
            self.rounded_box(track_x, bar_y, fill, BAR_HEIGHT, min(BAR_HEIGHT / 2, fill / 2), BAR_FILL)

        tick_x = track_x + bar_fill_width(metric.normal_percent, track_width)
        c = self.canvas
        c.setStrokeColor(colors.HexColor(NORMAL_TICK))
        c.setLineWidth(2)
        c.line(tick_x, self._pdf_y(bar_y - 3), tick_x, self._pdf_y(bar_y + BAR_HEIGHT + 3))

        self.text(track_x, self.y + 16, f"You: {metric.patient_display}", 8, TEXT_MUTED)
        self.text_right(track_x + track_width, self.y + 16, f"Normal: {metric.normal_display}", 8, TEXT_MUTED)
        self.y += ROW_HEIGHT

    def draw_recommendations(self, recommendations: tuple[str, ...]) -> None:
        if not recommendations:
            return
        self.ensure_space(SECTION_TITLE_HEIGHT + LINE_HEIGHT)
        self.text(self.margin, self.y, "AI Health Recommendations", 16, RECOMMENDATION_COLOR, bold=True)
        self.y += SECTION_TITLE_HEIGHT

        wrap_width = self.content_width - 32
        for number, recommendation in enumerate(recommendations, start=1):
            lines = simpleSplit(f"{number}. {recommendation}", "Helvetica", 10, wrap_width)
            for line in lines:
                self.ensure_space(LINE_HEIGHT)
                self.text(self.margin + 16, self.y, line, 10, TEXT_BODY)
                self.y += LINE_HEIGHT
        self.y += 10

    def draw_footer(self, report: Report) -> None:
        self.ensure_space(FOOTER_HEIGHT)
        self.text(self.margin, self.y, FOOTER_LINE, 8, TEXT_MUTED)
        self.text(self.margin, self.y + 12, f"Report ID: {report_id(report)}", 8, TEXT_MUTED)
        self.text(self.margin, self.y + 24, DISCLAIMER, 8, TEXT_MUTED)
        self.y += FOOTER_HEIGHT

    def finish(self) -> bytes:
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------

class PdfReportRenderer:
    """Draws a Report as a multi-page PDF.

    The renderer holds only configuration; every call gets its own drawing
    session, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        page_size: tuple[float, float] = letter,
        margin: float = 40,
        bottom_threshold: float = 60,
        compress: bool = True,
        tables: MetricTables | None = None,
    ) -> None:
        self.page_size = page_size
        self.margin = margin
        self.bottom_threshold = bottom_threshold
        self.compress = compress
        self.tables = tables

    def render(self, report: Report) -> bytes:
        return self.render_document(report).content

    def render_document(self, report: Report) -> RenderedDocument:
        tables = self.tables or load_metric_tables()
        kpis = report_kpis(report)
        session = _RenderSession(self.page_size, self.margin, self.bottom_threshold, self.compress)
        try:
            session.draw_header(report.timestamp)
            session.draw_kpis(kpis)
            session.draw_overall(report)
            for modality, analysis in report.analyses.items():
                session.draw_section(modality, extract_metrics(modality, analysis, tables))
            session.draw_recommendations(report.recommendations)
            session.draw_footer(report)
            content = session.finish()
        except RenderingError:
            raise
        except Exception as exc:
            raise RenderingError(f"Failed to render report PDF: {exc}") from exc

        logger.info(
            "Rendered report PDF: pages=%d, bytes=%d, modalities=%d",
            session.page_count,
            len(content),
            len(report.analyses),
        )
        return RenderedDocument(content=content, page_count=session.page_count, kpis=kpis)
