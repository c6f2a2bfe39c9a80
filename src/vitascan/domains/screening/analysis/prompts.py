"""Per-modality output schemas and prompt construction.

Field names and enumerations here are part of the external contract with
clients and must not be renamed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from vitascan.core.llm.system_prompt import build_full_system_prompt
from vitascan.domains.screening.models import ModalityKind, parse_modality

MODALITY_SCHEMAS: dict[ModalityKind, dict[str, Any]] = {
    ModalityKind.FACE: {
        "age": {"value": "number", "confidence": "0..1"},
        "gender": {"value": "male|female|unknown", "confidence": "0..1"},
        "skinConditions": [
            {"condition": "string", "severity": "mild|moderate|severe", "confidence": "0..1"}
        ],
        "facialFeatures": {"symmetry": "0..1", "skinTone": "string", "complexion": "string"},
        "healthIndicators": {
            "hydration": "poor|fair|good",
            "stressLevel": "low|moderate|high",
            "sleepQuality": "poor|adequate|good",
        },
    },
    ModalityKind.EYES: {
        "eyeHealth": {
            "overall": "poor|fair|good",
            "redness": "none|minimal|moderate|high",
            "dryness": "none|mild|moderate|high",
            "irritation": "none|mild|moderate|high",
        },
        "visionIndicators": {
            "pupilSize": "small|normal|large",
            "eyeAlignment": "poor|fair|good",
            "blinkRate": "low|normal|high",
        },
        "fatigueDetection": {
            "level": "low|moderate|high",
            "eyeStrain": "none|mild|moderate|high",
            "darkCircles": "none|present|pronounced",
        },
        "recommendations": ["string"],
    },
    ModalityKind.TONGUE: {
        "tongueColor": {"primary": "string", "secondary": "string", "interpretation": "string"},
        "coating": {
            "thickness": "none|thin|thick",
            "color": "string",
            "distribution": "even|patchy",
            "interpretation": "string",
        },
        "shape": {
            "size": "small|normal|large",
            "edges": "smooth|scalloped|irregular",
            "cracks": "none|few|many",
            "interpretation": "string",
        },
        "tcmIndicators": {
            "qi": "deficient|balanced|excess",
            "blood": "deficient|adequate|stagnant",
            "yin": "deficient|sufficient|excess",
            "yang": "low|moderate|excess",
        },
        "healthPatterns": {
            "digestive": "poor|fair|good",
            "immune": "weak|moderate|strong",
            "stress": "low|moderate|high",
        },
    },
    ModalityKind.SKIN: {
        "conditions": [{"type": "string", "severity": "mild|moderate|severe", "confidence": "0..1"}],
        "texture": {
            "smoothness": "poor|fair|good",
            "elasticity": "low|normal|high",
            "oiliness": "dry|balanced|oily",
        },
        "pigmentation": {
            "evenness": "poor|fair|good",
            "spots": "none|minimal|moderate|pronounced",
            "tone": "string",
        },
        "hydration": {
            "level": "low|adequate|high",
            "moisture": "low|balanced|high",
            "dryness": "none|mild|moderate|severe",
        },
        "sensitivity": {
            "level": "low|moderate|high",
            "redness": "none|minimal|moderate|high",
            "irritation": "none|mild|moderate|high",
        },
        "recommendations": ["string"],
    },
    ModalityKind.NAILS: {
        "nailHealth": {
            "strength": "poor|fair|good",
            "growth": "slow|normal|fast",
            "color": "string",
            "texture": "smooth|ridges|brittle",
        },
        "nutritionalIndicators": {
            "protein": "low|adequate|high",
            "vitamins": "low|sufficient|high",
            "minerals": "low|balanced|high",
            "hydration": "poor|fair|good",
        },
        "growthPatterns": {
            "rate": "slow|normal|fast",
            "ridges": "none|minimal|pronounced",
            "brittleness": "none|mild|moderate|high",
        },
        "abnormalities": {
            "spots": "none|few|many",
            "discoloration": "none|mild|pronounced",
            "deformities": "none|mild|pronounced",
        },
        "recommendations": ["string"],
    },
    ModalityKind.AUDIO: {
        "breathingPatterns": {
            "rate": "slow|normal|fast",
            "rhythm": "regular|irregular",
            "depth": "shallow|adequate|deep",
            "efficiency": "poor|adequate|good",
        },
        "heartRate": {
            "bpm": "number",
            "rhythm": "regular|irregular",
            "variability": "low|normal|high",
            "confidence": "0..1",
        },
        "voiceHealth": {
            "clarity": "poor|fair|good",
            "strength": "weak|normal|strong",
            "fatigue": "none|mild|moderate|high",
            "quality": "string",
        },
        "respiratoryIndicators": {
            "lungFunction": "reduced|normal",
            "airway": "clear|congested",
            "capacity": "low|adequate|high",
        },
        "recommendations": ["string"],
    },
}


@dataclass(frozen=True)
class ModalityPrompt:
    """Prompt pair sent with one sample."""

    system: str
    instruction: str
    schema: dict[str, Any]


def _sample_noun(modality: ModalityKind) -> str:
    return "audio recording" if modality is ModalityKind.AUDIO else "image"


def build_modality_prompt(modality: ModalityKind | str) -> ModalityPrompt:
    """Build the system message and strict-schema instruction for a modality."""
    modality = parse_modality(modality)
    schema = {modality.value: MODALITY_SCHEMAS[modality]}
    noun = _sample_noun(modality)

    system = build_full_system_prompt(
        f"Analyze the provided {noun} for {modality.value} health signals. "
        "Respond STRICTLY in minified JSON only, no backticks, no prose. "
        "Use the exact schema requested. Ensure the JSON matches expected keys."
    )
    instruction = (
        f"Return ONLY JSON with this top-level key structure for {modality.value}: "
        f"{json.dumps(schema, separators=(',', ':'))}."
    )
    return ModalityPrompt(system=system, instruction=instruction, schema=schema)
