"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Vitascan server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; binding elsewhere requires the explicit override below.
    vitascan_host: str = "127.0.0.1"
    vitascan_port: int = 8001
    vitascan_log_level: str = "info"
    vitascan_allow_insecure_bind: bool = False

    # Vision / audio analysis provider
    llm_provider: Literal["openai", "anthropic", "mock"] = "openai"
    openai_api_key: str = ""
    openai_vision_model: str = "gpt-4o-mini"
    openai_audio_model: str = "gpt-4o-audio-preview"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Email delivery
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_from: str = ""

    # WhatsApp delivery (Twilio)
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_whatsapp_from: str = ""

    # User store
    user_store_path: str = "~/.vitascan/users.json"

    # Encryption (user records at rest); empty keeps plain JSON
    encryption_key: str = ""

    # Metric tables override (YAML); empty uses the bundled table
    metric_table_path: str = ""

    @property
    def smtp_sender(self) -> str:
        """Envelope sender, falling back to the SMTP login."""
        return self.smtp_from or self.smtp_user


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
