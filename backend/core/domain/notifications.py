"""
core.domain.notifications — Notification creation helper.

Centralises notification creation so every service uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **In-process delivery** — a notification is a DB row read by the
  notification API.  Email/SMS fan-out is an external collaborator and
  would hang off ``_persist`` (``transaction.on_commit`` or a worker).
* **Fire-and-forget from the lifecycle's point of view** — lifecycle
  services call ``dispatch``, which wraps ``create`` in a savepoint and
  logs failures instead of raising, so a broken notification can never
  roll back a status transition.
* **Supports multiple recipients** — pass a single ``User`` or an
  iterable of ``User`` instances; ``None`` entries are skipped.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.dispatch(
        actor=request.user,
        recipients=application.handler,
        event_type="application_assigned",
        payload={"tracking_id": application.tracking_id},
        application=application,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable

from django.db import models

from core.domain.transactions import best_effort

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
# Templates are formatted with the ``payload`` dict; missing keys fall
# back to the raw template.
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "application_submitted":  ("Application Submitted",      "Your application {tracking_id} has been submitted successfully."),
    "application_assigned":   ("New Application Assigned",   "Application {tracking_id} has been assigned to you."),
    "assignment_confirmed":   ("Application Assigned",       "Your application {tracking_id} has been assigned to an official."),
    "assignment_pending":     ("Assignment Pending",         "Your application {tracking_id} is waiting for an available official."),
    "application_escalated":  ("Application Escalated",      "Application {tracking_id} was escalated to level {level} after its deadline passed."),
    "sla_breached":           ("Deadline Breached",          "Application {tracking_id} passed its deadline and was flagged at level {level}."),
    "status_changed":         ("Application Status Updated", "Your application {tracking_id} is now {status}."),
    "application_approved":   ("Application Approved",       "Your application {tracking_id} has been approved."),
    "application_rejected":   ("Application Rejected",       "Your application {tracking_id} has been rejected."),
    "application_auto_approved": ("Application Auto-Approved", "Your application {tracking_id} has been automatically approved."),
    "application_delayed":    ("Application Delayed",        "Application {tracking_id} has had no update for {days} days."),
}


def _render(event_type: str, payload: dict[str, Any]) -> tuple[str, str]:
    title, message = _EVENT_TEMPLATES.get(
        event_type,
        (event_type.replace("_", " ").title(), f"Event: {event_type}"),
    )
    try:
        return title, message.format(**payload)
    except (KeyError, IndexError):
        return title, message


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        actor: User | str | None,
        recipients: User | Iterable[User | None] | None,
        event_type: str,
        payload: dict[str, Any] | None = None,
        application: models.Model | None = None,
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient.

        Args:
            actor:          The user (or ``"system"``) who caused the event.
                            Logged only.
            recipients:     A single ``User`` or iterable of ``User``
                            instances.
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Template interpolation context.
            application:    Optional related application; its PK is stored
                            as ``application_id`` and as the generic relation.

        Returns:
            List of created ``Notification`` instances.
        """
        from django.contrib.contenttypes.models import ContentType

        from core.models import Notification  # lazy import — avoids circular deps

        if recipients is None:
            recipients = []
        elif isinstance(recipients, models.Model):
            recipients = [recipients]
        recipients = [r for r in recipients if r is not None]

        if not recipients:
            logger.warning(
                "NotificationService.create called with empty recipients "
                "for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        title, message = _render(event_type, payload or {})

        content_type = None
        object_id = None
        application_id = None
        if application is not None:
            content_type = ContentType.objects.get_for_model(application)
            object_id = str(application.pk)
            application_id = application.pk

        notifications: list[Notification] = []
        for recipient in recipients:
            notif = Notification.objects.create(
                recipient=recipient,
                event_type=event_type,
                title=title,
                message=message,
                application_id=application_id,
                content_type=content_type,
                object_id=object_id,
            )
            notifications.append(notif)

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications

    @classmethod
    def dispatch(cls, **kwargs: Any) -> None:
        """
        Best-effort variant of ``create`` used by the lifecycle engine.

        Never raises: a failure is logged and rolled back to its own
        savepoint so the triggering status change is kept.
        """
        with best_effort("notification", event_type=kwargs.get("event_type")):
            cls.create(**kwargs)
