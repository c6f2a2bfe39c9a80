"""MCP Prompts: interaction templates for screening sessions."""

from __future__ import annotations

from fastmcp import FastMCP


def register_screening_prompts(mcp: FastMCP) -> None:
    """Register screening MCP prompts."""

    @mcp.prompt()
    def full_screening_prompt() -> str:
        """Prompt template for a complete multi-capture screening."""
        return """I'd like a full wellness screening. I will provide:

1. A clear, front-facing photo of my face
2. A close-up of my eyes
3. A photo of my tongue
4. A close-up of a skin area
5. A photo of my fingernails
6. A short audio recording of my breathing

Please run generate_health_report with these captures, then walk me through
the overall score, each section, and the recommendations in plain language.
Remind me that this is not a medical diagnosis."""

    @mcp.prompt()
    def report_review_prompt(focus: str = "the areas that need the most attention") -> str:
        """Prompt template for reviewing an existing report."""
        return f"""Here is my latest health analysis report. Please review it with a focus on {focus}:

1. Summarize the overall score and what it is based on
2. Explain any indicator that is below its normal range
3. Turn the recommendations into a simple weekly plan
4. Tell me which captures to repeat for a more complete picture

Be encouraging and practical, and point me to a healthcare professional for anything concerning."""
