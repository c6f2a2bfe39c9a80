"""User profiles: registration, health-check history and gamification."""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from vitascan.core.storage.user_store import UserStore
from vitascan.domains.screening.domain_logic.tables import MetricTables
from vitascan.domains.screening.domain_logic.trends import compute_health_trends
from vitascan.domains.screening.models import Report, parse_timestamp

logger = logging.getLogger(__name__)

XP_PER_CHECK = 10
XP_PER_LEVEL = 100

_PERSONAL_FIELDS = ("age", "gender", "height", "weight", "avatar")
_HEALTH_METRIC_FIELDS = (
    "bloodPressure",
    "heartRate",
    "bloodSugar",
    "cholesterol",
    "bmi",
    "sleepHours",
    "exerciseFreq",
    "waterIntake",
    "stressLevel",
)


class UserNotFoundError(KeyError):
    """No profile is stored under the requested user id."""


def generate_user_id() -> str:
    return f"user_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def level_for_xp(xp: int) -> int:
    return xp // XP_PER_LEVEL + 1


class ProfileService:
    """Profile operations on top of a flat key-value :class:`UserStore`."""

    def __init__(
        self,
        store: UserStore,
        clock: Callable[[], datetime] | None = None,
        tables: MetricTables | None = None,
    ) -> None:
        self.store = store
        self.tables = tables
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> str:
        return self._clock().isoformat()

    def _load(self, user_id: str) -> dict[str, Any]:
        record = self.store.get(user_id) if user_id else None
        if record is None:
            raise UserNotFoundError(user_id)
        return record

    def exists(self, user_id: str) -> bool:
        return bool(user_id) and self.store.get(user_id) is not None

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def register(
        self,
        personal_info: Mapping[str, Any],
        health_metrics: Mapping[str, Any] | None = None,
        goals: list[Any] | None = None,
        preferences: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a profile. Name and email are required."""
        personal_info = personal_info or {}
        name = str(personal_info.get("name") or "").strip()
        email = str(personal_info.get("email") or "").strip()
        if not name or not email:
            raise ValueError("Name and email are required")

        health_metrics = health_metrics or {}
        now = self._now()
        user_id = generate_user_id()
        profile = {
            "id": user_id,
            "personalInfo": {
                "name": name,
                "email": email,
                **{f: personal_info.get(f) or None for f in _PERSONAL_FIELDS},
            },
            "healthMetrics": {f: health_metrics.get(f) or None for f in _HEALTH_METRIC_FIELDS},
            "goals": list(goals or []),
            "preferences": dict(preferences or {}),
            "registrationDate": now,
            "lastLogin": now,
            "healthHistory": [],
            "achievements": [],
            "gamificationData": {
                "level": 1,
                "xp": 0,
                "streak": 0,
                "badges": ["welcome"],
                "completedTasks": [],
            },
        }
        self.store.put(user_id, profile)
        logger.info("Registered user %s", user_id)
        return profile

    def get(self, user_id: str) -> dict[str, Any]:
        """Fetch a profile and refresh its ``lastLogin``."""
        profile = self._load(user_id)
        profile["lastLogin"] = self._now()
        self.store.put(user_id, profile)
        return profile

    # ------------------------------------------------------------------
    # Health history
    # ------------------------------------------------------------------

    def record_health_check(
        self,
        user_id: str,
        analysis_results: Mapping[str, Any] | None,
        health_data: Mapping[str, Any] | None = None,
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """Append a history entry and award XP.

        Returns the updated profile and the achievements unlocked by this check.
        """
        profile = self._load(user_id)
        now = self._now()
        profile.setdefault("healthHistory", []).append(
            {
                "id": str(int(self._clock().timestamp() * 1000)),
                "timestamp": now,
                "healthData": dict(health_data or {}),
                "analysisResults": dict(analysis_results or {}),
                "type": "health_check",
            }
        )

        game = profile.setdefault("gamificationData", {})
        game["xp"] = int(game.get("xp", 0)) + XP_PER_CHECK
        game.setdefault("completedTasks", []).append(
            {"type": "health_check", "timestamp": now, "xp": XP_PER_CHECK}
        )

        unlocked: list[dict[str, Any]] = []
        new_level = level_for_xp(game["xp"])
        if new_level > int(game.get("level", 1)):
            game["level"] = new_level
            unlocked.append(
                {
                    "type": "level_up",
                    "level": new_level,
                    "timestamp": now,
                    "title": f"Level {new_level} Achieved!",
                    "description": f"You've reached level {new_level} on your health journey!",
                }
            )
            profile.setdefault("achievements", []).extend(unlocked)
            logger.info("User %s reached level %d", user_id, new_level)

        self.store.put(user_id, profile)
        return profile, unlocked

    def record_report(
        self, user_id: str, report: Report, health_data: Mapping[str, Any] | None = None
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """Record a generated report's analyses as a health check."""
        return self.record_health_check(user_id, report.analyses_dict(), health_data)

    def history(self, user_id: str, days: int = 30) -> dict[str, Any]:
        """History entries within the last ``days`` days, with trend lines."""
        if days < 0:
            raise ValueError("days must be non-negative")
        profile = self._load(user_id)
        cutoff = self._clock() - timedelta(days=days)
        entries = profile.get("healthHistory") or []

        recent = []
        for entry in entries:
            try:
                stamp = parse_timestamp(entry.get("timestamp"))
            except ValueError:
                logger.warning("Skipping history entry with bad timestamp for user %s", user_id)
                continue
            if stamp >= cutoff:
                recent.append(entry)

        return {
            "history": recent,
            "trends": compute_health_trends(recent, self.tables),
            "totalChecks": len(entries),
            "gamificationData": profile.get("gamificationData", {}),
        }
