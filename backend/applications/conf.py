"""
Lifecycle configuration.

All deploy-tunable lifecycle numbers live in one settings dict::

    CASEWORK = {
        "SLA_HOURS": {"high": 24, "medium": 72, "low": 168},
        "AUTO_APPROVAL_DAYS": 30,
        "SCHEDULER_INTERVAL_MINUTES": 60,
        "STALE_AFTER_DAYS": 7,
        "DEPARTMENT_SEPARATOR": "–",
    }

Missing keys fall back to ``DEFAULTS``.  Settings are read on every call
so ``override_settings`` works in tests.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "SLA_HOURS": {"high": 24, "medium": 72, "low": 168},
    "AUTO_APPROVAL_DAYS": 30,
    "SCHEDULER_INTERVAL_MINUTES": 60,
    "STALE_AFTER_DAYS": 7,
    "DEPARTMENT_SEPARATOR": "–",
}


class LifecycleSettings:
    """Resolved view of ``settings.CASEWORK``."""

    def __init__(self, raw: dict[str, Any]) -> None:
        sla_hours = dict(DEFAULTS["SLA_HOURS"])
        sla_hours.update(raw.get("SLA_HOURS") or {})
        self.sla_hours: dict[str, int] = {k.lower(): int(v) for k, v in sla_hours.items()}
        self.auto_approval_days = int(raw.get("AUTO_APPROVAL_DAYS", DEFAULTS["AUTO_APPROVAL_DAYS"]))
        self.scheduler_interval_minutes = int(
            raw.get("SCHEDULER_INTERVAL_MINUTES", DEFAULTS["SCHEDULER_INTERVAL_MINUTES"])
        )
        self.stale_after_days = int(raw.get("STALE_AFTER_DAYS", DEFAULTS["STALE_AFTER_DAYS"]))
        self.department_separator: str = raw.get(
            "DEPARTMENT_SEPARATOR", DEFAULTS["DEPARTMENT_SEPARATOR"]
        )

    def sla_window(self, priority: str) -> timedelta:
        """SLA length for ``priority``; unknown priorities use the ``low`` window."""
        hours = self.sla_hours.get(priority, self.sla_hours["low"])
        return timedelta(hours=hours)

    @property
    def auto_approval_window(self) -> timedelta:
        """
        Submission-to-auto-approval window, never shorter than the
        longest SLA window.
        """
        longest_sla = timedelta(hours=max(self.sla_hours.values()))
        return max(timedelta(days=self.auto_approval_days), longest_sla)

    @property
    def stale_after(self) -> timedelta:
        return timedelta(days=self.stale_after_days)


def lifecycle_settings() -> LifecycleSettings:
    return LifecycleSettings(getattr(settings, "CASEWORK", {}) or {})
