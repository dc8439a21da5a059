"""
Applications app models.

Covers the lifecycle of a citizen service request: submission, routing
to a department handler, processing, deadline-driven escalation to a
more senior tier, and the final decision (explicit or automatic).

Every status change goes through
``applications.services.ApplicationWorkflowService`` and leaves one
``ApplicationStatusLog`` row behind.
"""

import uuid

from django.conf import settings
from django.db import models

from core.permissions_constants import ApplicationsPerms


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ApplicationStatus(models.TextChoices):
    """
    Lifecycle statuses.

    ``ESCALATED`` is a label only: escalation is recorded as an audit
    event and the application itself goes straight back to ``ASSIGNED``
    under the new handler, so the value is never stored on
    ``Application.status``.
    """

    SUBMITTED = "submitted", "Submitted"
    ASSIGNED = "assigned", "Assigned"
    IN_PROGRESS = "in_progress", "In Progress"
    ESCALATED = "escalated", "Escalated"
    # ── Terminal (absorbing) ─────────────────────────────────────────
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    AUTO_APPROVED = "auto_approved", "Auto-Approved"


TERMINAL_STATUSES: frozenset[str] = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.AUTO_APPROVED,
})

#: Terminal statuses that set ``approved_at`` and get a finalization stamp.
APPROVAL_STATUSES: frozenset[str] = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.AUTO_APPROVED,
})

#: Statuses that count towards a handler's active workload.
ACTIVE_WORKLOAD_STATUSES: tuple[str, ...] = (
    ApplicationStatus.ASSIGNED,
    ApplicationStatus.IN_PROGRESS,
)


class Priority(models.TextChoices):
    """Drives the SLA window (see ``settings.CASEWORK["SLA_HOURS"]``)."""

    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    LOW = "low", "Low"


class LogEvent(models.TextChoices):
    """What kind of lifecycle step produced a history row."""

    SUBMITTED = "submitted", "Submitted"
    ASSIGNED = "assigned", "Assigned"
    STATUS_CHANGED = "status_changed", "Status Changed"
    ESCALATED = "escalated", "Escalated"
    FLAGGED = "flagged", "SLA Breach Flagged"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Application(models.Model):
    """
    One citizen service request.

    * ``handler`` may be empty only while the status is ``submitted``.
    * ``escalation_level`` never decreases.
    * ``sla_due_at`` is never moved earlier, and
      ``auto_approval_deadline`` is fixed at submission and always at
      or after ``sla_due_at``.
    * Terminal statuses are absorbing.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )
    tracking_id = models.CharField(
        max_length=32,
        unique=True,
        verbose_name="Tracking ID",
        help_text="Human-readable reference, e.g. APP-2026-000042. Display only.",
    )
    citizen = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="applications",
        verbose_name="Citizen",
    )
    application_type = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Application Type",
    )
    description = models.TextField(
        blank=True,
        default="",
        verbose_name="Description",
    )

    # ── Routing ──────────────────────────────────────────────────────
    department = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Department",
    )
    sub_department = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Sub-Department",
    )
    handler = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="handled_applications",
        verbose_name="Current Handler",
    )

    # ── Lifecycle ────────────────────────────────────────────────────
    status = models.CharField(
        max_length=20,
        choices=ApplicationStatus.choices,
        default=ApplicationStatus.SUBMITTED,
        verbose_name="Status",
        db_index=True,
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.LOW,
        verbose_name="Priority",
    )
    escalation_level = models.PositiveIntegerField(
        default=0,
        verbose_name="Escalation Level",
    )
    is_solved = models.BooleanField(
        default=False,
        verbose_name="Marked Solved by Citizen",
    )

    # ── Timestamps & deadlines ───────────────────────────────────────
    submitted_at = models.DateTimeField(verbose_name="Submitted At")
    last_updated_at = models.DateTimeField(verbose_name="Last Updated At")
    assigned_at = models.DateTimeField(null=True, blank=True, verbose_name="Assigned At")
    approved_at = models.DateTimeField(null=True, blank=True, verbose_name="Approved At")
    sla_due_at = models.DateTimeField(verbose_name="SLA Due At")
    auto_approval_deadline = models.DateTimeField(verbose_name="Auto-Approval Deadline")
    stale_notified_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Last Delay Reminder",
    )

    class Meta:
        verbose_name = "Application"
        verbose_name_plural = "Applications"
        ordering = ["-submitted_at"]
        indexes = [
            models.Index(fields=["status", "sla_due_at"], name="app_status_sla_idx"),
            models.Index(fields=["status", "auto_approval_deadline"], name="app_status_auto_idx"),
            models.Index(fields=["handler", "status"], name="app_handler_status_idx"),
        ]
        permissions = [
            (ApplicationsPerms.CAN_SUBMIT_APPLICATION, "Can submit a service application"),
            (ApplicationsPerms.CAN_BE_ASSIGNED_APPLICATION, "Can be assigned applications (handler)"),
            (ApplicationsPerms.CAN_PROCESS_APPLICATION, "Can process applications assigned to them"),
            (ApplicationsPerms.CAN_ASSIGN_APPLICATION, "Can (re)assign any application"),
            (ApplicationsPerms.CAN_RUN_LIFECYCLE_JOBS, "Can trigger escalation / auto-approval jobs"),
            # Scope permissions (data-visibility tiers)
            (ApplicationsPerms.CAN_SCOPE_ALL_APPLICATIONS, "Unrestricted application visibility"),
            (ApplicationsPerms.CAN_SCOPE_ASSIGNED_APPLICATIONS, "See applications assigned to self"),
            (ApplicationsPerms.CAN_SCOPE_OWN_APPLICATIONS, "See only own submitted applications"),
        ]

    def __str__(self):
        return f"{self.tracking_id} [{self.status}]"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class ApplicationStatusLog(models.Model):
    """
    Immutable audit trail of every lifecycle step for an application.

    ``timestamp`` equals the ``last_updated_at`` written by the same
    step, so rows of one application are strictly ordered by it.
    ``actor`` is a display label (username or ``"system"``);
    ``changed_by`` links the user when there is one.
    """

    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name="status_logs",
        verbose_name="Application",
    )
    from_status = models.CharField(
        max_length=20,
        choices=ApplicationStatus.choices,
        blank=True,
        default="",
        verbose_name="Previous Status",
    )
    to_status = models.CharField(
        max_length=20,
        choices=ApplicationStatus.choices,
        verbose_name="New Status",
    )
    event = models.CharField(
        max_length=20,
        choices=LogEvent.choices,
        verbose_name="Event",
    )
    actor = models.CharField(
        max_length=150,
        verbose_name="Actor",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="application_status_changes",
        verbose_name="Changed By",
    )
    message = models.TextField(
        blank=True,
        default="",
        verbose_name="Comment",
    )
    timestamp = models.DateTimeField(verbose_name="Timestamp")

    class Meta:
        verbose_name = "Application Status Log"
        verbose_name_plural = "Application Status Logs"
        ordering = ["timestamp", "id"]

    def __str__(self):
        return (
            f"{self.application_id}: "
            f"{self.from_status or '∅'} → {self.to_status} ({self.event})"
        )
