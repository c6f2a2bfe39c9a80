"""Vitascan server entry point: ``python -m vitascan.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vitascan.core.config.settings import Settings, get_settings
from vitascan.core.server.app import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level_name: str) -> None:
    """Configure root logging once, from ``VITASCAN_LOG_LEVEL``."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request line at INFO, which would include Twilio URLs
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def check_bind_address(settings: Settings) -> None:
    """Refuse a public bind unless explicitly allowed; there is no auth layer."""
    if settings.vitascan_allow_insecure_bind or _is_loopback_host(settings.vitascan_host):
        return
    raise RuntimeError(
        f"Refusing to bind Vitascan to non-loopback host {settings.vitascan_host!r}: "
        "the server has no auth layer and handles health captures. "
        "Set VITASCAN_ALLOW_INSECURE_BIND=true to override (unsafe)."
    )


def run() -> None:
    """Start the Vitascan MCP server with Streamable HTTP transport."""
    settings = get_settings()
    configure_logging(settings.vitascan_log_level)
    logger = logging.getLogger(__name__)

    check_bind_address(settings)

    # Builds the provider, user store and metric tables; a bad
    # METRIC_TABLE_PATH or ENCRYPTION_KEY fails here, before binding.
    mcp = create_app()
    logger.info(
        "Starting Vitascan server on %s:%d (provider=%s)",
        settings.vitascan_host,
        settings.vitascan_port,
        settings.llm_provider,
    )
    mcp.run(
        transport="streamable-http",
        host=settings.vitascan_host,
        port=settings.vitascan_port,
    )


if __name__ == "__main__":
    run()
