"""Vitascan MCP server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastmcp import FastMCP

from vitascan import __version__
from vitascan.core.config.settings import Settings, get_settings
from vitascan.core.llm.provider import LLMProvider, create_provider
from vitascan.core.storage.encryption import FieldEncryptor
from vitascan.core.storage.user_store import JsonFileUserStore, UserStore
from vitascan.domains.screening.analysis.gateway import ModalityAnalyzerGateway
from vitascan.domains.screening.delivery.email import EmailDelivery
from vitascan.domains.screening.delivery.messaging import WhatsAppDelivery
from vitascan.domains.screening.domain_logic.tables import load_metric_tables
from vitascan.domains.screening.profiles import ProfileService
from vitascan.domains.screening.prompts.screening_prompts import register_screening_prompts
from vitascan.domains.screening.rendering.pdf_renderer import PdfReportRenderer
from vitascan.domains.screening.resources.schemas import register_schema_resources
from vitascan.domains.screening.tools.analysis_tools import register_analysis_tools
from vitascan.domains.screening.tools.delivery_tools import register_delivery_tools
from vitascan.domains.screening.tools.profile_tools import register_profile_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "Vitascan"


def _provider_from_settings(settings: Settings) -> LLMProvider | None:
    """Pick the analysis provider. A missing API key means no provider at all."""
    if settings.llm_provider == "mock":
        return create_provider("mock")
    if settings.llm_provider == "anthropic":
        api_key, model, audio_model = settings.anthropic_api_key, settings.anthropic_model, ""
    elif settings.llm_provider == "openai":
        api_key = settings.openai_api_key
        model = settings.openai_vision_model
        audio_model = settings.openai_audio_model
    else:  # pragma: no cover
        raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r}")

    if not api_key:
        logger.warning(
            "No API key configured for provider '%s'; analyses will return empty results",
            settings.llm_provider,
        )
        return None
    return create_provider(settings.llm_provider, api_key=api_key, model=model, audio_model=audio_model)


def _user_store_from_settings(settings: Settings) -> UserStore:
    encryptor = FieldEncryptor(settings.encryption_key) if settings.encryption_key else None
    if encryptor is None:
        logger.info(
            "No ENCRYPTION_KEY configured; user records are stored as plain JSON. "
            "Set ENCRYPTION_KEY to encrypt them at rest."
        )
    path = Path(settings.user_store_path).expanduser()
    logger.info("User store: %s", path)
    return JsonFileUserStore(path, encryptor)


def create_app(
    *,
    provider_override: LLMProvider | None = None,
    user_store_override: UserStore | None = None,
    email_override: EmailDelivery | None = None,
    messaging_override: WhatsAppDelivery | None = None,
    renderer_override: PdfReportRenderer | None = None,
) -> FastMCP:
    """Create and configure the Vitascan MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Loads the metric tables
    3. Chooses the analysis provider and builds the gateway
    4. Opens the user store
    5. Builds the PDF renderer and delivery channels
    6. Registers all tools, resources, and prompts
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Vitascan health screening server. Analyzes face, eye, tongue, skin, "
            "nail and breathing captures with a multimodal model, assembles a scored "
            "wellness report, renders it as PDF and delivers it by email or WhatsApp. "
            "Results are informational and not a medical diagnosis."
        ),
    )

    # --- Metric tables ---
    tables = load_metric_tables(settings.metric_table_path or None)

    # --- Analysis provider ---
    provider = provider_override if provider_override is not None else _provider_from_settings(settings)
    gateway = ModalityAnalyzerGateway(provider)
    logger.info("Analysis provider: %s", gateway.provider_name)

    # --- User store ---
    store = user_store_override if user_store_override is not None else _user_store_from_settings(settings)
    profiles = ProfileService(store, tables=tables)

    # --- Rendering and delivery ---
    renderer = renderer_override or PdfReportRenderer(tables=tables)
    email = email_override or EmailDelivery.from_settings(settings, renderer)
    messaging = messaging_override or WhatsAppDelivery.from_settings(settings)
    if not email.configured:
        logger.info("Email delivery not configured (SMTP_HOST / SMTP_FROM)")
    if not messaging.configured:
        logger.info("WhatsApp delivery not configured (TWILIO_*)")

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": __version__,
            "provider": gateway.provider_name,
            "delivery": {
                "download": True,
                "email": email.configured,
                "whatsapp": messaging.configured,
            },
            "user_store": getattr(store, "kind", type(store).__name__),
        }

    register_analysis_tools(server, gateway, profiles, tables)
    register_delivery_tools(server, renderer, email, messaging)
    register_profile_tools(server, profiles)
    logger.info("Screening tools registered")

    # --- Register resources ---
    register_schema_resources(server)

    # --- Register prompts ---
    register_screening_prompts(server)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
