"""MCP Resources for modality schema discovery."""

from __future__ import annotations

import json

from fastmcp import FastMCP

from vitascan.domains.screening.analysis.prompts import MODALITY_SCHEMAS
from vitascan.domains.screening.models import MODALITY_ORDER


def register_schema_resources(mcp: FastMCP) -> None:
    """Register modality schema resources on the MCP server."""

    @mcp.resource("schema://screening/modalities")
    def modality_schemas_resource() -> str:
        """Output schema the analysis provider must follow, per modality."""
        return json.dumps(
            {
                "modalities": [m.value for m in MODALITY_ORDER],
                "image_modalities": [m.value for m in MODALITY_ORDER if m.is_image],
                "schemas": {m.value: MODALITY_SCHEMAS[m] for m in MODALITY_ORDER},
            },
            indent=2,
        )
