"""Report delivery channels: download, email and WhatsApp messaging."""

from __future__ import annotations

from dataclasses import dataclass


class DeliveryError(Exception):
    """The transport rejected or failed to carry the message."""


class ConfigurationError(Exception):
    """A channel is missing credentials or settings. Raised before any I/O."""


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one successful delivery attempt."""

    success: bool
    channel: str
    message_id: str | None = None
