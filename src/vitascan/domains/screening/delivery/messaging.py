"""WhatsApp delivery through the Twilio Messages REST resource."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from vitascan.domains.screening.delivery import (
    ConfigurationError,
    DeliveryError,
    DeliveryOutcome,
)
from vitascan.domains.screening.models import Report

if TYPE_CHECKING:
    from vitascan.core.config.settings import Settings

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
DEFAULT_MESSAGE = "Your Health Analysis Report is ready."
_SCHEME = "whatsapp:"


def normalize_whatsapp_address(address: str) -> str:
    """Strip whitespace and ensure the ``whatsapp:`` scheme prefix."""
    compact = "".join((address or "").split())
    if compact.lower().startswith(_SCHEME):
        compact = compact[len(_SCHEME):]
    if not compact:
        raise ValueError("WhatsApp address must not be empty")
    return f"{_SCHEME}{compact}"


def report_summary_line(report: Report) -> str:
    overall = report.overall_health
    modalities = ", ".join(m.value for m in report.present_modalities) or "none"
    if overall is None or overall.insufficient_data:
        return f"Analyzed: {modalities}."
    return f"Overall score: {overall.score}/100 ({overall.level}). Analyzed: {modalities}."


class WhatsAppDelivery:
    """Sends a short text notification over WhatsApp."""

    channel = "whatsapp"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        sender: str,
        client: httpx.AsyncClient | None = None,
        base_url: str = TWILIO_API_BASE,
        timeout: float = 20.0,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.sender = sender
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> WhatsAppDelivery:
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            sender=settings.twilio_whatsapp_from,
            client=client,
        )

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.sender)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"

    def build_body(self, text: str | None = None, report: Report | None = None) -> str:
        body = (text or "").strip() or DEFAULT_MESSAGE
        if report is not None:
            body = f"{body}\n{report_summary_line(report)}"
        return body

    async def send(
        self, recipient: str, text: str | None = None, report: Report | None = None
    ) -> DeliveryOutcome:
        """Post one WhatsApp message. Returns the provider's message SID."""
        to_address = normalize_whatsapp_address(recipient)
        if not self.configured:
            raise ConfigurationError(
                "WhatsApp delivery is not configured "
                "(set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_WHATSAPP_FROM)"
            )

        form = {
            "From": normalize_whatsapp_address(self.sender),
            "To": to_address,
            "Body": self.build_body(text, report),
        }
        try:
            if self._client is not None:
                response = await self._post(self._client, form)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=8.0)) as client:
                    response = await self._post(client, form)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("WhatsApp delivery rejected: HTTP %d", exc.response.status_code)
            raise DeliveryError(
                f"WhatsApp delivery failed: HTTP {exc.response.status_code}: {_error_message(exc.response)}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("WhatsApp delivery failed: %s", exc)
            raise DeliveryError(f"WhatsApp delivery failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None
        sid = payload.get("sid") if isinstance(payload, dict) else None
        logger.info("WhatsApp message queued: sid=%s", sid)
        return DeliveryOutcome(success=True, channel=self.channel, message_id=sid)

    async def _post(self, client: httpx.AsyncClient, form: dict[str, str]) -> httpx.Response:
        return await client.post(
            self.messages_url,
            data=form,
            auth=(self.account_sid, self.auth_token),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text[:200]
