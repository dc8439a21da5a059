"""
applications.scheduler — Time-driven lifecycle jobs.

Three periodic scans, all feeding the same
``ApplicationWorkflowService`` choke point as request-triggered calls:

``AutoFinalizationTimer``
    Non-terminal applications past ``auto_approval_deadline`` →
    ``auto_approved``.
``EscalationScheduler``
    Non-terminal applications past ``sla_due_at`` (but not yet past the
    auto-approval deadline) → escalate to the lowest higher tier in the
    department, or flag only when there is none.
``StaleApplicationMonitor``
    Handled applications with no update for ``STALE_AFTER_DAYS`` →
    delay reminder to citizen and handler, once per staleness window.

``run_lifecycle_tick`` runs them in that order with one clock reading,
so an application that reached its unconditional deadline is finalized
before the escalation scan could touch it.

Failure semantics
-----------------
Each item is processed in its own transaction and re-checked under a
row lock.  Any error on one item is logged and the scan moves on; the
item is retried on the next tick.
Candidate scans use the ``(status, deadline)`` indexes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.constants import AUTO_APPROVAL_COMMENT, SYSTEM_ACTOR
from core.domain.exceptions import InvalidTransition
from core.domain.notifications import NotificationService
from core.domain.transactions import lock_for_update

from .assignment import DEFAULT_TIER, handler_queryset, select_escalation_handler
from .conf import lifecycle_settings
from .models import TERMINAL_STATUSES, Application, ApplicationStatus
from .services import ApplicationWorkflowService

logger = logging.getLogger(__name__)


class AutoFinalizationTimer:
    """Forces ``auto_approved`` on applications past their hard deadline."""

    @staticmethod
    def due_ids(now: datetime) -> list:
        return list(
            Application.objects
            .exclude(status__in=TERMINAL_STATUSES)
            .filter(auto_approval_deadline__lt=now)
            .order_by("auto_approval_deadline")
            .values_list("pk", flat=True)
        )

    @classmethod
    def run(cls, now: datetime | None = None) -> list:
        """
        Finalize every overdue application.  Returns the ids finalized in
        this run; an application that is already terminal is skipped, so
        running twice in a row is a no-op the second time.
        """
        now = now or timezone.now()
        finalized = []
        for application_id in cls.due_ids(now):
            try:
                ApplicationWorkflowService.apply_transition(
                    application_id,
                    ApplicationStatus.AUTO_APPROVED,
                    SYSTEM_ACTOR,
                    AUTO_APPROVAL_COMMENT,
                    now=now,
                )
            except InvalidTransition:
                logger.debug("Application %s closed before auto-approval; skipped", application_id)
                continue
            except Exception:
                logger.exception("Auto-approval failed for application %s", application_id)
                continue
            finalized.append(application_id)

        logger.info("Auto-finalization tick at %s: %d application(s) auto-approved", now, len(finalized))
        return finalized


class EscalationScheduler:
    """Re-routes applications whose SLA deadline has passed."""

    @staticmethod
    def breached_ids(now: datetime) -> list:
        return list(
            Application.objects
            .exclude(status__in=TERMINAL_STATUSES)
            .filter(sla_due_at__lt=now, auto_approval_deadline__gte=now)
            .order_by("sla_due_at")
            .values_list("pk", flat=True)
        )

    @staticmethod
    @transaction.atomic
    def _escalate_one(application_id: Any, now: datetime) -> str | None:
        """
        Escalate one application under its row lock.

        Returns ``"escalated"``, ``"flagged"``, or ``None`` when the
        application no longer qualifies.
        """
        application = lock_for_update(Application, application_id)
        if (
            application.is_terminal
            or application.sla_due_at >= now
            or application.auto_approval_deadline < now
        ):
            return None

        current_tier = application.handler.hierarchy_level if application.handler_id else DEFAULT_TIER
        target = select_escalation_handler(
            application.department,
            current_tier,
            list(handler_queryset()),
        )
        ApplicationWorkflowService.escalate(
            application.pk,
            application.escalation_level + 1,
            target.pk if target is not None else None,
            now=now,
        )
        return "escalated" if target is not None else "flagged"

    @classmethod
    def run(cls, now: datetime | None = None) -> dict[str, list]:
        """
        Escalate every breached application at most once.

        Returns ``{"escalated": [...], "flagged": [...], "failed": [...]}``.
        """
        now = now or timezone.now()
        report: dict[str, list] = {"escalated": [], "flagged": [], "failed": []}
        processed: set = set()

        for application_id in cls.breached_ids(now):
            if application_id in processed:
                continue
            processed.add(application_id)
            try:
                outcome = cls._escalate_one(application_id, now)
            except Exception:
                logger.exception("Escalation failed for application %s", application_id)
                report["failed"].append(application_id)
                continue
            if outcome is not None:
                report[outcome].append(application_id)

        logger.info(
            "Escalation tick at %s: %d escalated, %d flagged, %d failed",
            now, len(report["escalated"]), len(report["flagged"]), len(report["failed"]),
        )
        return report


class StaleApplicationMonitor:
    """Sends delay reminders for handled applications that sit untouched."""

    @staticmethod
    def stale_ids(now: datetime) -> list:
        threshold = now - lifecycle_settings().stale_after
        return list(
            Application.objects
            .exclude(status__in=TERMINAL_STATUSES)
            .exclude(status=ApplicationStatus.SUBMITTED)
            .filter(last_updated_at__lt=threshold)
            .filter(Q(stale_notified_at__isnull=True) | Q(stale_notified_at__lt=threshold))
            .values_list("pk", flat=True)
        )

    @staticmethod
    @transaction.atomic
    def _remind(application_id: Any, now: datetime) -> bool:
        config = lifecycle_settings()
        threshold = now - config.stale_after
        application = lock_for_update(Application, application_id)
        if (
            application.is_terminal
            or application.status == ApplicationStatus.SUBMITTED
            or application.last_updated_at >= threshold
            or (application.stale_notified_at and application.stale_notified_at >= threshold)
        ):
            return False

        NotificationService.dispatch(
            actor=SYSTEM_ACTOR,
            recipients=[application.citizen, application.handler],
            event_type="application_delayed",
            payload={
                "tracking_id": application.tracking_id,
                "days": (now - application.last_updated_at).days,
            },
            application=application,
        )
        application.stale_notified_at = now
        application.save(update_fields=["stale_notified_at"])
        return True

    @classmethod
    def run(cls, now: datetime | None = None) -> list:
        now = now or timezone.now()
        reminded = []
        for application_id in cls.stale_ids(now):
            try:
                if cls._remind(application_id, now):
                    reminded.append(application_id)
            except Exception:
                logger.exception("Delay reminder failed for application %s", application_id)
        if reminded:
            logger.info("Sent delay reminders for %d application(s)", len(reminded))
        return reminded


def run_lifecycle_tick(now: datetime | None = None) -> dict[str, int]:
    """
    One scheduler tick: timer, then escalation scan, then delay
    reminders, all against the same ``now``.
    """
    now = now or timezone.now()
    finalized = AutoFinalizationTimer.run(now=now)
    escalation = EscalationScheduler.run(now=now)
    reminded = StaleApplicationMonitor.run(now=now)
    return {
        "auto_approved": len(finalized),
        "escalated": len(escalation["escalated"]),
        "flagged": len(escalation["flagged"]),
        "failed": len(escalation["failed"]),
        "stale_reminders": len(reminded),
    }
