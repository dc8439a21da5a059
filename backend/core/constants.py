"""
Core constants — **Single Source of Truth** for project-wide magic values.

Any business rule that references one of these values should import it
from here instead of hardcoding.  Deploy-tunable numbers (SLA windows,
scheduler interval) live in ``settings.CASEWORK`` instead; see
``applications.conf``.
"""

# ── Actors ──────────────────────────────────────────────────────────
# Audit-trail actor label for time-triggered (scheduler / timer) changes.
SYSTEM_ACTOR: str = "system"

# ── Tracking IDs ────────────────────────────────────────────────────
#     APP-2026-000042
TRACKING_ID_PREFIX: str = "APP"
TRACKING_ID_DIGITS: int = 6

# ── Fixed audit comments ────────────────────────────────────────────
AUTO_APPROVAL_COMMENT: str = (
    "Auto-approved by the system: the unconditional decision deadline passed."
)
ESCALATION_FLAG_ONLY_COMMENT: str = (
    "SLA breached: no higher-tier handler available, flagged only."
)
