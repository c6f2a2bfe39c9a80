"""MCP tools for user profiles and health history."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

if TYPE_CHECKING:
    from vitascan.domains.screening.profiles import ProfileService


def register_profile_tools(mcp: FastMCP, profiles: ProfileService) -> None:
    """Register user profile tools on the MCP server."""

    @mcp.tool
    def register_user(
        personal_info: dict[str, Any],
        health_metrics: dict[str, Any] | None = None,
        goals: list[Any] | None = None,
        preferences: dict[str, Any] | None = None,
    ) -> str:
        """Create a user profile. ``personal_info`` must include name and email."""
        user = profiles.register(personal_info, health_metrics, goals, preferences)
        return json.dumps({"success": True, "userId": user["id"], "user": user})

    @mcp.tool
    def get_user(user_id: str) -> str:
        """Fetch a user profile (refreshes the last-login time)."""
        return json.dumps({"success": True, "user": profiles.get(user_id)})

    @mcp.tool
    def record_health_check(
        user_id: str,
        analysis_results: dict[str, Any],
        health_data: dict[str, Any] | None = None,
    ) -> str:
        """Append analysis results to a user's history and award +10 XP."""
        user, unlocked = profiles.record_health_check(user_id, analysis_results, health_data)
        return json.dumps({"success": True, "user": user, "newAchievements": unlocked})

    @mcp.tool
    def get_health_history(user_id: str, days: int = 30) -> str:
        """Health history for the last ``days`` days, with trend lines."""
        return json.dumps({"success": True, **profiles.history(user_id, days)})
