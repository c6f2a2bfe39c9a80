"""MCP tools for exporting and delivering reports."""

from __future__ import annotations

import base64
import json
import logging
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

if TYPE_CHECKING:
    from vitascan.domains.screening.delivery.email import EmailDelivery
    from vitascan.domains.screening.delivery.messaging import WhatsAppDelivery
    from vitascan.domains.screening.rendering.pdf_renderer import PdfReportRenderer

from vitascan.domains.screening.delivery import ConfigurationError, DeliveryError
from vitascan.domains.screening.delivery.download import to_download
from vitascan.domains.screening.models import Report

logger = logging.getLogger(__name__)


def _failure(exc: Exception) -> str:
    return json.dumps({"success": False, "error": str(exc)})


def register_delivery_tools(
    mcp: FastMCP,
    renderer: PdfReportRenderer,
    email: EmailDelivery,
    messaging: WhatsAppDelivery,
) -> None:
    """Register PDF export, email and WhatsApp tools on the MCP server."""

    @mcp.tool
    def export_report_pdf(report: dict[str, Any]) -> str:
        """Render a report (as returned by generate_health_report) to PDF.

        Returns ``{filename, content_type, page_count, content_base64}``.
        """
        download = to_download(Report.from_dict(report), renderer)
        return json.dumps({
            "filename": download.filename,
            "content_type": download.content_type,
            "page_count": download.page_count,
            "content_base64": base64.b64encode(download.content).decode("ascii"),
        })

    @mcp.tool
    async def email_report(to: str, report: dict[str, Any], subject: str = "") -> str:
        """Email the report PDF as an attachment.

        Args:
            to: Recipient email address.
            report: Report object from generate_health_report.
            subject: Optional subject line.
        """
        parsed = Report.from_dict(report)
        try:
            outcome = await email.send(to, parsed, subject or None)
        except (ConfigurationError, DeliveryError) as exc:
            logger.warning("email_report failed: %s", exc)
            return _failure(exc)
        return json.dumps({"success": outcome.success, "messageId": outcome.message_id})

    @mcp.tool
    async def send_whatsapp_report(
        to: str,
        message: str = "",
        report: dict[str, Any] | None = None,
    ) -> str:
        """Send a WhatsApp notification that a report is ready.

        Args:
            to: Recipient phone number (E.164), with or without the 'whatsapp:' prefix.
            message: Optional message text.
            report: Optional report; a one-line score summary is appended.
        """
        parsed = Report.from_dict(report) if report else None
        try:
            outcome = await messaging.send(to, message or None, parsed)
        except (ConfigurationError, DeliveryError) as exc:
            logger.warning("send_whatsapp_report failed: %s", exc)
            return _failure(exc)
        return json.dumps({"success": outcome.success, "messageId": outcome.message_id})
