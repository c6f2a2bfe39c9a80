"""Direct download of a rendered report."""

from __future__ import annotations

from dataclasses import dataclass

from vitascan.domains.screening.models import Report
from vitascan.domains.screening.rendering.pdf_renderer import PdfReportRenderer

REPORT_FILENAME = "health-report.pdf"
PDF_CONTENT_TYPE = "application/pdf"


@dataclass(frozen=True)
class ReportDownload:
    filename: str
    content_type: str
    content: bytes
    page_count: int = 1


def to_download(report: Report, renderer: PdfReportRenderer | None = None) -> ReportDownload:
    """Render ``report`` and wrap it as a PDF attachment."""
    document = (renderer or PdfReportRenderer()).render_document(report)
    return ReportDownload(
        filename=REPORT_FILENAME,
        content_type=PDF_CONTENT_TYPE,
        content=document.content,
        page_count=document.page_count,
    )
