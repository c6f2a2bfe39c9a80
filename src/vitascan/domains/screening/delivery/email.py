"""Email delivery of the report PDF over SMTP."""

from __future__ import annotations

import asyncio
import logging
import re
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid
from typing import TYPE_CHECKING, Any, Callable

from vitascan.domains.screening.delivery import (
    ConfigurationError,
    DeliveryError,
    DeliveryOutcome,
)
from vitascan.domains.screening.delivery.download import to_download
from vitascan.domains.screening.models import Report

if TYPE_CHECKING:
    from vitascan.core.config.settings import Settings
    from vitascan.domains.screening.rendering.pdf_renderer import PdfReportRenderer

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Your Health Analysis Report"
DEFAULT_BODY = "Attached is your health analysis report PDF."

_ADDRESS_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email_address(address: str) -> str:
    """Return the trimmed address or raise ``ValueError``."""
    address = (address or "").strip()
    if not _ADDRESS_RE.match(address):
        raise ValueError(f"Invalid email recipient: {address!r}")
    return address


class EmailDelivery:
    """Sends a rendered report as an email attachment.

    ``smtp_factory`` is called as ``factory(host, port, timeout=...)`` and must
    return an ``smtplib.SMTP``-like context manager; it defaults to
    ``smtplib.SMTP_SSL`` for implicit TLS and ``smtplib.SMTP`` otherwise.
    """

    channel = "email"

    def __init__(
        self,
        host: str,
        port: int = 587,
        secure: bool = False,
        username: str = "",
        password: str = "",
        sender: str = "",
        smtp_factory: Callable[..., Any] | None = None,
        renderer: PdfReportRenderer | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.username = username
        self.password = password
        self.sender = sender or username
        self.renderer = renderer
        self.timeout = timeout
        self._smtp_factory = smtp_factory

    @classmethod
    def from_settings(
        cls, settings: Settings, renderer: PdfReportRenderer | None = None
    ) -> EmailDelivery:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            secure=settings.smtp_secure,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            sender=settings.smtp_sender,
            renderer=renderer,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender)

    def build_message(self, recipient: str, report: Report, subject: str | None = None) -> EmailMessage:
        download = to_download(report, self.renderer)
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject or DEFAULT_SUBJECT
        message["Message-ID"] = make_msgid(domain=self.sender.rpartition("@")[2] or None)
        message.set_content(DEFAULT_BODY)
        maintype, subtype = download.content_type.split("/", 1)
        message.add_attachment(
            download.content,
            maintype=maintype,
            subtype=subtype,
            filename=download.filename,
        )
        return message

    async def send(self, recipient: str, report: Report, subject: str | None = None) -> DeliveryOutcome:
        """Render and email ``report``. One attempt, no retries."""
        recipient = validate_email_address(recipient)
        if not self.configured:
            raise ConfigurationError("Email delivery is not configured (set SMTP_HOST and SMTP_FROM or SMTP_USER)")

        message = self.build_message(recipient, report, subject)
        await asyncio.to_thread(self._deliver, message)
        logger.info("Report emailed via %s:%d (%d bytes)", self.host, self.port, len(message.as_bytes()))
        return DeliveryOutcome(success=True, channel=self.channel, message_id=message["Message-ID"])

    def _connect(self) -> Any:
        if self._smtp_factory is not None:
            return self._smtp_factory(self.host, self.port, timeout=self.timeout)
        if self.secure:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()
            )
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def _deliver(self, message: EmailMessage) -> None:
        try:
            with self._connect() as smtp:
                if not self.secure:
                    smtp.ehlo()
                    if smtp.has_extn("starttls"):
                        smtp.starttls(context=ssl.create_default_context())
                        smtp.ehlo()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery via %s:%d failed: %s", self.host, self.port, exc)
            raise DeliveryError(f"Email delivery failed: {exc}") from exc
