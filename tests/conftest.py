"""Shared test fixtures for Vitascan tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("METRIC_TABLE_PATH", "")
    monkeypatch.setenv("USER_STORE_PATH", str(tmp_path / "users.json"))
    for name in (
        "SMTP_HOST", "SMTP_USER", "SMTP_PASS", "SMTP_FROM",
        "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_WHATSAPP_FROM",
    ):
        monkeypatch.setenv(name, "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vitascan.core.llm.providers.mock import MockProvider  # noqa: E402
from vitascan.domains.screening.models import Sample  # noqa: E402

# ---------------------------------------------------------------------------
# Canned provider payloads (one per modality, wrapped under the modality key)
# ---------------------------------------------------------------------------

FACE_ANALYSIS: dict[str, Any] = {
    "age": {"value": 34, "confidence": 0.7},
    "gender": {"value": "female", "confidence": 0.8},
    "skinConditions": [{"condition": "acne", "severity": "mild", "confidence": 0.6}],
    "facialFeatures": {"symmetry": 0.9, "skinTone": "medium", "complexion": "even"},
    "healthIndicators": {"hydration": "good", "stressLevel": "moderate", "sleepQuality": "adequate"},
}

EYES_ANALYSIS: dict[str, Any] = {
    "eyeHealth": {"overall": "good", "redness": "minimal", "dryness": "none", "irritation": "none"},
    "visionIndicators": {"pupilSize": "normal", "eyeAlignment": "good", "blinkRate": "normal"},
    "fatigueDetection": {"level": "low", "eyeStrain": "none", "darkCircles": "none"},
    "recommendations": [],
}

TONGUE_ANALYSIS: dict[str, Any] = {
    "tcmIndicators": {"qi": "deficient", "blood": "adequate", "yin": "sufficient", "yang": "moderate"},
}

AUDIO_ANALYSIS: dict[str, Any] = {
    "breathingPatterns": {"rate": "normal", "rhythm": "regular", "depth": "adequate", "efficiency": "adequate"},
    "heartRate": {"bpm": 72, "rhythm": "regular", "variability": "normal", "confidence": 0.6},
}

# 1x1 PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)
WAV_BYTES = b"RIFF$\x00\x00\x00WAVEfmt " + b"\x00" * 28


def wrap(modality: str, analysis: Any) -> str:
    return json.dumps({modality: analysis})


@pytest.fixture
def image_sample() -> Sample:
    return Sample(mime_type="image/png", data=PNG_BYTES)


@pytest.fixture
def audio_sample() -> Sample:
    return Sample(mime_type="audio/wav", data=WAV_BYTES)


@pytest.fixture
def mock_provider() -> MockProvider:
    """Mock provider answering each modality with its canned payload."""
    return MockProvider(
        responses={
            "face": wrap("face", FACE_ANALYSIS),
            "eyes": wrap("eyes", EYES_ANALYSIS),
            "tongue": wrap("tongue", TONGUE_ANALYSIS),
            "audio": wrap("audio", AUDIO_ANALYSIS),
        }
    )


# ---------------------------------------------------------------------------
# Storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from vitascan.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def memory_store():
    from vitascan.core.storage.user_store import InMemoryUserStore

    return InMemoryUserStore()


# ---------------------------------------------------------------------------
# Fake SMTP
# ---------------------------------------------------------------------------

class FakeSMTP:
    """Records what an smtplib.SMTP would have been asked to do."""

    instances: list["FakeSMTP"] = []

    def __init__(self, host: str, port: int, timeout: float = 30.0, fail_with: Exception | None = None) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.fail_with = fail_with
        self.started_tls = False
        self.logged_in: tuple[str, str] | None = None
        self.sent: list[Any] = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *args: Any) -> None:
        return None

    def ehlo(self) -> None:
        pass

    def has_extn(self, name: str) -> bool:
        return name.lower() == "starttls"

    def starttls(self, context: Any = None) -> None:
        self.started_tls = True

    def login(self, user: str, password: str) -> None:
        self.logged_in = (user, password)

    def send_message(self, message: Any) -> dict:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)
        return {}


@pytest.fixture
def fake_smtp():
    FakeSMTP.instances = []
    return FakeSMTP
