"""
Core app services — **Service Layer**.

Read-side services for the cross-app records owned by ``core``:
a user's notification inbox and finalization artifacts.  Views delegate
to these classes; the write side lives in ``core.domain``.

Models from other apps are never imported at module level; the core app
only references applications by id.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from django.db.models import QuerySet

from core.domain.exceptions import NotFound

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import FinalizationArtifact, Notification


# ═══════════════════════════════════════════════════════════════════
#  Notification Inbox Service
# ═══════════════════════════════════════════════════════════════════

class NotificationInboxService:
    """
    Handles listing and marking notifications as read for a given user.
    """

    def __init__(self, user: User) -> None:
        self.user = user

    def list_notifications(self, *, unread_only: bool = False) -> QuerySet[Notification]:
        """Return notifications for ``self.user``, most recent first."""
        from core.models import Notification

        qs = (
            Notification.objects
            .filter(recipient=self.user)
            .select_related("content_type")
            .order_by("-created_at", "-id")
        )
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def mark_as_read(self, notification_id: Any) -> Notification:
        """Mark a single notification as read."""
        from core.models import Notification

        try:
            notification = Notification.objects.get(
                pk=notification_id,
                recipient=self.user,
            )
        except (Notification.DoesNotExist, ValueError):
            raise NotFound(f"Notification with id {notification_id} not found.")
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification


# ═══════════════════════════════════════════════════════════════════
#  Finalization Artifact Queries
# ═══════════════════════════════════════════════════════════════════

class FinalizationArtifactQueryService:
    """Lookup of the artifact stamped for an application."""

    @staticmethod
    def get_for_application(application_id: Any) -> FinalizationArtifact:
        from core.models import FinalizationArtifact

        try:
            return FinalizationArtifact.objects.get(application_id=application_id)
        except FinalizationArtifact.DoesNotExist:
            raise NotFound("This application has no finalization artifact yet.")
