"""
Applications app Service Layer.

This module is the **single source of truth** for all business logic
in the ``applications`` app.  Views must remain thin: validate input via
serializers, call a service method, and return the result wrapped in
a DRF ``Response``.

Architecture
------------
- ``ApplicationWorkflowService``    — the lifecycle state machine: the one
                                       choke point for every status change,
                                       assignment and escalation.
- ``ApplicationSubmissionService``  — creation + first assignment.
- ``ApplicationQueryService``       — permission-scoped reads, history,
                                       public tracking lookup.
- ``ApplicationActionService``      — request-facing guards (who may
                                       transition / assign / accept /
                                       mark solved) in front of the
                                       workflow service.

Lifecycle State-Machine Overview
--------------------------------
::

  SUBMITTED ──assign──▶ ASSIGNED ──▶ IN_PROGRESS ──▶ APPROVED
      │                   │  ▲            │     └───▶ REJECTED
      │                   │  └─escalate───┘
      └───────────────────┴──────────────────────▶ AUTO_APPROVED (timer)

* ``assign`` works from any non-terminal status (first routing, manual
  and administrative reassignment).
* ``escalate`` is an atomic "reassign + bump level": the application
  never rests in ``escalated``; the history row carries the
  ``escalated`` event.
* Terminal statuses are absorbing.

Concurrency
-----------
Every mutation locks the application row (``select_for_update``) inside
``transaction.atomic``; the handler's lifetime counter is bumped with an
``F()`` update in the same transaction.  Notifications and finalization
stamping run in their own savepoints and never undo a transition.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.db.models import Max, QuerySet
from django.utils import timezone

from core.constants import (
    ESCALATION_FLAG_ONLY_COMMENT,
    SYSTEM_ACTOR,
    TRACKING_ID_DIGITS,
    TRACKING_ID_PREFIX,
)
from core.domain.access import apply_permission_scope, require_permission
from core.domain.exceptions import (
    Conflict,
    DomainError,
    InvalidTransition,
    NotFound,
    PermissionDenied,
)
from core.domain.finalization import FinalizationService
from core.domain.notifications import NotificationService
from core.domain.transactions import best_effort, increment_field, lock_for_update
from core.permissions_constants import ApplicationsPerms

from .assignment import handler_queryset, normalize_department, select_handler
from .conf import lifecycle_settings
from .models import (
    APPROVAL_STATUSES,
    Application,
    ApplicationStatus,
    ApplicationStatusLog,
    LogEvent,
    Priority,
)

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)

Actor = Any  # ``User`` or the ``SYSTEM_ACTOR`` label


# ═══════════════════════════════════════════════════════════════════
#  Valid transition map
# ═══════════════════════════════════════════════════════════════════

#: Moves accepted by ``apply_transition``.  ``assigned`` and
#: ``escalated`` are reached only through ``assign`` / ``escalate``.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    ApplicationStatus.SUBMITTED: frozenset({
        ApplicationStatus.AUTO_APPROVED,
    }),
    ApplicationStatus.ASSIGNED: frozenset({
        ApplicationStatus.IN_PROGRESS,
        ApplicationStatus.AUTO_APPROVED,
    }),
    ApplicationStatus.IN_PROGRESS: frozenset({
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.AUTO_APPROVED,
    }),
}

#: Citizen-facing notification per target status.
_STATUS_EVENTS: dict[str, str] = {
    ApplicationStatus.IN_PROGRESS: "status_changed",
    ApplicationStatus.APPROVED: "application_approved",
    ApplicationStatus.REJECTED: "application_rejected",
    ApplicationStatus.AUTO_APPROVED: "application_auto_approved",
}


# ═══════════════════════════════════════════════════════════════════
#  Internal helpers
# ═══════════════════════════════════════════════════════════════════


def _actor_label(actor: Actor) -> str:
    if actor is None:
        return SYSTEM_ACTOR
    if isinstance(actor, models.Model):
        return actor.get_username()
    return str(actor)


def _actor_user(actor: Actor):
    return actor if isinstance(actor, models.Model) else None


def _next_timestamp(application: Application, now: datetime | None = None) -> datetime:
    """
    ``now``, pushed just past ``last_updated_at`` when needed so the
    history of one application is strictly ordered.
    """
    now = now or timezone.now()
    previous = application.last_updated_at
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _refreshed_sla(application: Application, now: datetime) -> datetime:
    """
    A fresh SLA window from ``now``, capped at the auto-approval
    deadline and never earlier than the current SLA deadline.
    """
    window = lifecycle_settings().sla_window(application.priority)
    candidate = min(now + window, application.auto_approval_deadline)
    return max(application.sla_due_at, candidate)


def _record(
    application: Application,
    *,
    from_status: str,
    to_status: str,
    event: str,
    actor: Actor,
    message: str,
    timestamp: datetime,
) -> ApplicationStatusLog:
    return ApplicationStatusLog.objects.create(
        application=application,
        from_status=from_status,
        to_status=to_status,
        event=event,
        actor=_actor_label(actor),
        changed_by=_actor_user(actor),
        message=message,
        timestamp=timestamp,
    )


def _get_handler(handler_id: Any) -> User:
    User = get_user_model()
    try:
        handler = User.objects.select_related("role").get(pk=handler_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"Handler with id {handler_id} not found.")
    if not handler.is_active or not handler.is_handler:
        raise DomainError(f"User '{handler.get_username()}' is not an eligible handler.")
    return handler


def _closed(application: Application, target: str) -> InvalidTransition:
    return InvalidTransition(
        current=application.status,
        target=target,
        reason="The application is closed.",
    )


# ═══════════════════════════════════════════════════════════════════
#  Application Workflow Service
# ═══════════════════════════════════════════════════════════════════


class ApplicationWorkflowService:
    """
    Lifecycle state machine for a single application.

    Every method:

    1. locks the application row,
    2. validates the move (terminal statuses are absorbing),
    3. writes the new state and exactly one history row whose
       ``timestamp`` equals the new ``last_updated_at``,
    4. fires best-effort side effects (notifications, finalization
       stamp).

    No permission checks happen here; callers are either the
    request-facing ``ApplicationActionService`` or the system
    (submission routing, scheduler, timer).  Time-driven callers pass
    ``now`` so a whole tick uses one clock reading.
    """

    @staticmethod
    @transaction.atomic
    def apply_transition(
        application_id: Any,
        new_status: str,
        actor: Actor,
        comment: str = "",
        *,
        now: datetime | None = None,
    ) -> Application:
        """
        Move an application to ``new_status``.

        Raises
        ------
        InvalidTransition
            Unknown status, terminal application, a move missing from
            ``ALLOWED_TRANSITIONS``, or a target reserved for
            ``assign`` / ``escalate``.
        NotFound
            No such application.
        """
        if new_status not in ApplicationStatus.values:
            raise InvalidTransition(f"Unknown status '{new_status}'.")

        application = lock_for_update(Application, application_id)
        current = application.status

        if application.is_terminal:
            raise _closed(application, new_status)
        if new_status in (ApplicationStatus.ASSIGNED, ApplicationStatus.ESCALATED):
            raise InvalidTransition(
                current=current,
                target=new_status,
                reason="Use assignment or escalation instead.",
            )
        if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
            raise InvalidTransition(current=current, target=new_status)

        timestamp = _next_timestamp(application, now)
        application.status = new_status
        application.last_updated_at = timestamp
        update_fields = ["status", "last_updated_at"]
        if new_status in APPROVAL_STATUSES:
            application.approved_at = timestamp
            update_fields.append("approved_at")
        application.save(update_fields=update_fields)

        _record(
            application,
            from_status=current,
            to_status=new_status,
            event=LogEvent.STATUS_CHANGED,
            actor=actor,
            message=comment,
            timestamp=timestamp,
        )

        if new_status in APPROVAL_STATUSES:
            with best_effort("finalization stamp", application_id=application.pk):
                FinalizationService.stamp(application.pk)

        NotificationService.dispatch(
            actor=actor,
            recipients=application.citizen,
            event_type=_STATUS_EVENTS.get(new_status, "status_changed"),
            payload={
                "tracking_id": application.tracking_id,
                "status": application.get_status_display(),
            },
            application=application,
        )

        logger.info(
            "Application %s: %s → %s by %s",
            application.tracking_id, current, new_status, _actor_label(actor),
        )
        return application

    @staticmethod
    @transaction.atomic
    def assign(
        application_id: Any,
        handler_id: Any,
        actor: Actor = None,
        *,
        comment: str = "",
        now: datetime | None = None,
    ) -> Application:
        """
        Make ``handler_id`` the application's handler and set it to
        ``assigned``.

        The handler's ``total_assigned_count`` goes up by exactly one in
        the same transaction as the application write.  The SLA window
        restarts for the new handler (never moving earlier).

        Raises
        ------
        InvalidTransition
            The application is terminal.
        Conflict
            The handler already holds the application.
        DomainError
            The target user is not an active handler.
        """
        application = lock_for_update(Application, application_id)
        if application.is_terminal:
            raise _closed(application, ApplicationStatus.ASSIGNED)

        handler = _get_handler(handler_id)
        if application.handler_id == handler.pk:
            raise Conflict(
                f"Application {application.tracking_id} is already assigned to "
                f"'{handler.get_username()}'."
            )

        previous_status = application.status
        clock = now or timezone.now()
        timestamp = _next_timestamp(application, clock)

        application.handler = handler
        application.status = ApplicationStatus.ASSIGNED
        application.assigned_at = timestamp
        application.last_updated_at = timestamp
        application.sla_due_at = _refreshed_sla(application, clock)
        application.save(update_fields=[
            "handler", "status", "assigned_at", "last_updated_at", "sla_due_at",
        ])
        handler.total_assigned_count = increment_field(
            type(handler), handler.pk, "total_assigned_count",
        )

        _record(
            application,
            from_status=previous_status,
            to_status=ApplicationStatus.ASSIGNED,
            event=LogEvent.ASSIGNED,
            actor=actor,
            message=comment or f"Assigned to {handler.get_username()}.",
            timestamp=timestamp,
        )

        payload = {"tracking_id": application.tracking_id}
        NotificationService.dispatch(
            actor=actor,
            recipients=handler,
            event_type="application_assigned",
            payload=payload,
            application=application,
        )
        NotificationService.dispatch(
            actor=actor,
            recipients=application.citizen,
            event_type="assignment_confirmed",
            payload=payload,
            application=application,
        )

        logger.info(
            "Application %s assigned to %s (pk=%s) by %s",
            application.tracking_id, handler.get_username(), handler.pk, _actor_label(actor),
        )
        return application

    @staticmethod
    @transaction.atomic
    def escalate(
        application_id: Any,
        new_level: int,
        new_handler_id: Any = None,
        comment: str = "",
        *,
        actor: Actor = SYSTEM_ACTOR,
        now: datetime | None = None,
    ) -> Application:
        """
        Raise the escalation level and, when ``new_handler_id`` is given,
        hand the application to that more senior handler.

        With no new handler the breach is *flagged only*: the level and
        the SLA move, the handler stays.  Either way one history row
        with an ``escalated`` / ``flagged`` event is written and the
        application is left in a regular status.

        Raises
        ------
        InvalidTransition
            Terminal application, a ``new_level`` that does not increase
            the level, or a new handler whose tier is not strictly above
            the current handler's.
        """
        application = lock_for_update(Application, application_id)
        if application.is_terminal:
            raise _closed(application, ApplicationStatus.ESCALATED)
        if new_level <= application.escalation_level:
            raise InvalidTransition(
                current=application.status,
                target=ApplicationStatus.ESCALATED,
                reason=(
                    f"Escalation level must increase "
                    f"(current {application.escalation_level}, requested {new_level})"
                ),
            )

        previous_status = application.status
        previous_handler = application.handler
        clock = now or timezone.now()
        timestamp = _next_timestamp(application, clock)
        payload = {"tracking_id": application.tracking_id, "level": new_level}

        if new_handler_id is not None:
            handler = _get_handler(new_handler_id)
            if previous_handler is not None and handler.hierarchy_level <= previous_handler.hierarchy_level:
                raise InvalidTransition(
                    current=previous_status,
                    target=ApplicationStatus.ESCALATED,
                    reason=(
                        f"Escalation target tier {handler.hierarchy_level} is not above "
                        f"the current tier {previous_handler.hierarchy_level}"
                    ),
                )
            application.handler = handler
            application.status = ApplicationStatus.ASSIGNED
            application.assigned_at = timestamp
            event = LogEvent.ESCALATED
            message = comment or (
                f"Escalated to level {new_level}: reassigned to "
                f"{handler.get_username()} (tier {handler.hierarchy_level})."
            )
        else:
            handler = None
            event = LogEvent.FLAGGED
            message = comment or ESCALATION_FLAG_ONLY_COMMENT

        application.escalation_level = new_level
        application.last_updated_at = timestamp
        application.sla_due_at = _refreshed_sla(application, clock)
        application.save(update_fields=[
            "handler", "status", "assigned_at", "escalation_level",
            "last_updated_at", "sla_due_at",
        ])
        if handler is not None:
            handler.total_assigned_count = increment_field(
                type(handler), handler.pk, "total_assigned_count",
            )

        _record(
            application,
            from_status=previous_status,
            to_status=application.status,
            event=event,
            actor=actor,
            message=message,
            timestamp=timestamp,
        )

        if handler is not None:
            NotificationService.dispatch(
                actor=actor,
                recipients=[handler, application.citizen],
                event_type="application_escalated",
                payload=payload,
                application=application,
            )
            logger.info(
                "Application %s escalated to level %d: %s → %s",
                application.tracking_id,
                new_level,
                previous_handler.get_username() if previous_handler else None,
                handler.get_username(),
            )
        else:
            NotificationService.dispatch(
                actor=actor,
                recipients=previous_handler,
                event_type="sla_breached",
                payload=payload,
                application=application,
            )
            logger.warning(
                "Application %s breached its SLA; no higher-tier handler in %r, "
                "flagged at level %d",
                application.tracking_id, application.department, new_level,
            )
        return application


# ═══════════════════════════════════════════════════════════════════
#  Application Submission Service
# ═══════════════════════════════════════════════════════════════════


class ApplicationSubmissionService:
    """
    Creates applications and routes them to their first handler.

    The only request-triggered caller of ``select_handler``.
    """

    #: Attempts at allocating a tracking id under concurrent submissions.
    TRACKING_ID_ATTEMPTS: int = 3

    @staticmethod
    def _next_tracking_id(year: int) -> str:
        prefix = f"{TRACKING_ID_PREFIX}-{year}-"
        last = (
            Application.objects
            .filter(tracking_id__startswith=prefix)
            .aggregate(last=Max("tracking_id"))["last"]
        )
        sequence = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{sequence:0{TRACKING_ID_DIGITS}d}"

    @staticmethod
    def _resolve_priority(priority: str | None) -> str:
        if not priority:
            return Priority.LOW
        value = str(priority).strip().lower()
        if value not in Priority.values:
            raise DomainError(
                f"Unknown priority '{priority}'. Expected one of: {', '.join(Priority.values)}."
            )
        return value

    @classmethod
    @transaction.atomic
    def submit(
        cls,
        citizen: User,
        department: str | None = None,
        sub_department: str | None = None,
        priority: str | None = None,
        *,
        application_type: str = "",
        description: str = "",
        now: datetime | None = None,
    ) -> Application:
        """
        Create an application and route it.

        Implementation Contract
        -----------------------
        1. Resolve the department (explicit, else the short form of
           ``application_type``) and the priority (default ``low``).
        2. Create the application in ``submitted`` with
           ``sla_due_at = now + SLA(priority)`` and
           ``auto_approval_deadline = now + auto-approval window``;
           log the ``submitted`` event.
        3. With a department, pick a handler via ``select_handler`` and
           ``assign``.  No handler → stays ``submitted``, citizen is told
           assignment is pending.
        4. Notify the citizen of the submission (the handler is notified
           by ``assign``).

        Repository failures propagate to the caller.
        """
        now = now or timezone.now()
        config = lifecycle_settings()
        resolved_priority = cls._resolve_priority(priority)
        resolved_department = (department or "").strip() or normalize_department(application_type)

        application = None
        for attempt in range(1, cls.TRACKING_ID_ATTEMPTS + 1):
            try:
                with transaction.atomic():
                    application = Application.objects.create(
                        tracking_id=cls._next_tracking_id(now.year),
                        citizen=citizen,
                        application_type=application_type or "",
                        description=description or "",
                        department=resolved_department,
                        sub_department=(sub_department or "").strip(),
                        status=ApplicationStatus.SUBMITTED,
                        priority=resolved_priority,
                        submitted_at=now,
                        last_updated_at=now,
                        sla_due_at=now + config.sla_window(resolved_priority),
                        auto_approval_deadline=now + config.auto_approval_window,
                    )
                break
            except IntegrityError:
                if attempt == cls.TRACKING_ID_ATTEMPTS:
                    raise
                logger.warning("Tracking id collision on attempt %d; retrying", attempt)

        _record(
            application,
            from_status="",
            to_status=ApplicationStatus.SUBMITTED,
            event=LogEvent.SUBMITTED,
            actor=citizen,
            message="Application submitted.",
            timestamp=now,
        )
        logger.info(
            "Application %s submitted by %s (department=%r, priority=%s)",
            application.tracking_id, citizen.get_username(), resolved_department, resolved_priority,
        )

        payload = {"tracking_id": application.tracking_id}
        handler = None
        if resolved_department:
            handler = select_handler(
                resolved_department,
                application.sub_department or None,
                list(handler_queryset()),
            )

        if handler is not None:
            application = ApplicationWorkflowService.assign(
                application.pk,
                handler.pk,
                actor=SYSTEM_ACTOR,
                comment=f"Automatically routed to {handler.get_username()}.",
                now=now,
            )
        else:
            NotificationService.dispatch(
                actor=SYSTEM_ACTOR,
                recipients=citizen,
                event_type="assignment_pending",
                payload=payload,
                application=application,
            )

        NotificationService.dispatch(
            actor=citizen,
            recipients=citizen,
            event_type="application_submitted",
            payload=payload,
            application=application,
        )
        return application

    @classmethod
    def submit_request(cls, requesting_user: User, validated_data: dict[str, Any]) -> Application:
        """Permission-checked ``submit`` for the HTTP layer."""
        require_permission(
            requesting_user,
            ApplicationsPerms.full(ApplicationsPerms.CAN_SUBMIT_APPLICATION),
            message="You are not allowed to submit applications.",
        )
        return cls.submit(
            requesting_user,
            department=validated_data.get("department"),
            sub_department=validated_data.get("sub_department"),
            priority=validated_data.get("priority"),
            application_type=validated_data.get("application_type", ""),
            description=validated_data.get("description", ""),
        )


# ═══════════════════════════════════════════════════════════════════
#  Application Query Service
# ═══════════════════════════════════════════════════════════════════

#: First matching permission wins; broadest first.
APPLICATION_SCOPE_RULES = [
    (ApplicationsPerms.full(ApplicationsPerms.CAN_SCOPE_ALL_APPLICATIONS),
     lambda qs, u: qs),
    (ApplicationsPerms.full(ApplicationsPerms.CAN_SCOPE_ASSIGNED_APPLICATIONS),
     lambda qs, u: qs.filter(handler=u)),
    (ApplicationsPerms.full(ApplicationsPerms.CAN_SCOPE_OWN_APPLICATIONS),
     lambda qs, u: qs.filter(citizen=u)),
]


class ApplicationQueryService:
    """Permission-scoped reads."""

    @staticmethod
    def get_filtered_queryset(requesting_user: User, filters: dict[str, Any] | None = None) -> QuerySet:
        """
        Applications visible to ``requesting_user``, optionally filtered
        by ``status``, ``priority``, ``department`` (short form) and
        ``escalated`` (level > 0).
        """
        qs = Application.objects.select_related("citizen", "handler")
        qs = apply_permission_scope(qs, requesting_user, scope_rules=APPLICATION_SCOPE_RULES)

        filters = filters or {}
        if filters.get("status"):
            qs = qs.filter(status=filters["status"])
        if filters.get("priority"):
            qs = qs.filter(priority=filters["priority"])
        if filters.get("department"):
            qs = qs.filter(department__startswith=normalize_department(filters["department"]))
        if filters.get("escalated") is True:
            qs = qs.filter(escalation_level__gt=0)
        return qs.order_by("-submitted_at")

    @classmethod
    def get_application(cls, requesting_user: User, application_id: Any) -> Application:
        """One visible application, else ``NotFound``."""
        try:
            return cls.get_filtered_queryset(requesting_user).get(pk=application_id)
        except (Application.DoesNotExist, ValidationError, ValueError):
            raise NotFound(f"Application with id {application_id} not found.")

    @classmethod
    def get_history(cls, requesting_user: User, application_id: Any) -> QuerySet:
        """Audit trail of a visible application, oldest first."""
        application = cls.get_application(requesting_user, application_id)
        return application.status_logs.select_related("changed_by").order_by("timestamp", "id")

    @staticmethod
    def track(tracking_id: str) -> Application:
        """Public lookup by tracking id."""
        try:
            return Application.objects.get(tracking_id=tracking_id.strip().upper())
        except Application.DoesNotExist:
            raise NotFound(f"No application with tracking id {tracking_id}.")


# ═══════════════════════════════════════════════════════════════════
#  Application Action Service (request-facing guards)
# ═══════════════════════════════════════════════════════════════════


class ApplicationActionService:
    """
    Authorization in front of ``ApplicationWorkflowService`` for
    user-initiated actions.  Each guard runs under the same row lock as
    the mutation it protects.
    """

    @staticmethod
    def _is_admin(user: User) -> bool:
        return user.has_perm(ApplicationsPerms.full(ApplicationsPerms.CAN_ASSIGN_APPLICATION))

    @classmethod
    @transaction.atomic
    def transition(
        cls,
        requesting_user: User,
        application_id: Any,
        new_status: str,
        comment: str = "",
    ) -> Application:
        """
        Handler (or administrator) moves the application along.

        ``auto_approved`` is reserved for the timer.
        """
        application = lock_for_update(Application, application_id)

        if new_status == ApplicationStatus.AUTO_APPROVED:
            raise InvalidTransition(
                current=application.status,
                target=new_status,
                reason="Only the system may auto-approve.",
            )

        is_current_handler = (
            application.handler_id == requesting_user.pk
            and requesting_user.has_perm(
                ApplicationsPerms.full(ApplicationsPerms.CAN_PROCESS_APPLICATION)
            )
        )
        if not (is_current_handler or cls._is_admin(requesting_user)):
            raise PermissionDenied("Only the assigned handler can update this application.")

        return ApplicationWorkflowService.apply_transition(
            application.pk, new_status, requesting_user, comment,
        )

    @classmethod
    def assign(cls, requesting_user: User, application_id: Any, handler_id: Any, comment: str = "") -> Application:
        """Administrative (re)assignment."""
        require_permission(
            requesting_user,
            ApplicationsPerms.full(ApplicationsPerms.CAN_ASSIGN_APPLICATION),
            message="Only administrators can assign applications.",
        )
        return ApplicationWorkflowService.assign(
            application_id, handler_id, actor=requesting_user, comment=comment,
        )

    @staticmethod
    @transaction.atomic
    def accept(requesting_user: User, application_id: Any) -> Application:
        """
        A handler takes an unassigned application of their own
        department.
        """
        if not requesting_user.is_handler:
            raise PermissionDenied("Only handlers can accept applications.")

        application = lock_for_update(Application, application_id)
        if application.handler_id is not None:
            raise Conflict(f"Application {application.tracking_id} already has a handler.")
        if normalize_department(application.department) != normalize_department(requesting_user.department):
            raise PermissionDenied("This application belongs to another department.")

        return ApplicationWorkflowService.assign(
            application.pk,
            requesting_user.pk,
            actor=requesting_user,
            comment="Accepted by handler.",
        )

    @staticmethod
    @transaction.atomic
    def mark_solved(requesting_user: User, application_id: Any, solved: bool | None = None) -> Application:
        """
        Owner-only satisfaction flag; toggles when ``solved`` is omitted.
        Does not touch the lifecycle status.
        """
        application = lock_for_update(Application, application_id)
        if application.citizen_id != requesting_user.pk:
            raise PermissionDenied("Only the submitting citizen can mark an application solved.")

        application.is_solved = (not application.is_solved) if solved is None else bool(solved)
        application.save(update_fields=["is_solved"])
        logger.info(
            "Application %s marked solved=%s by its citizen",
            application.tracking_id, application.is_solved,
        )
        return application
