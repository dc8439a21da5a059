"""
Core app serializers.

**Response-only** serializers for the records owned by the core app.
They never import models from other apps.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.

    Used by the Notification ViewSet to list and retrieve notifications
    for the authenticated user.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    event_type = serializers.CharField(
        read_only=True,
        help_text="Machine-readable event key (e.g. 'application_assigned').",
    )
    title = serializers.CharField(
        read_only=True,
        help_text="Short notification title.",
    )
    message = serializers.CharField(
        read_only=True,
        help_text="Full notification message body.",
    )
    is_read = serializers.BooleanField(
        read_only=True,
        help_text="Whether the recipient has marked this notification as read.",
    )
    application_id = serializers.UUIDField(
        read_only=True,
        allow_null=True,
        help_text="Related application (if any).",
    )
    created_at = serializers.DateTimeField(
        read_only=True,
        help_text="When the notification was created.",
    )


# ════════════════════════════════════════════════════════════════════
#  Finalization Artifacts
# ════════════════════════════════════════════════════════════════════

class FinalizationArtifactSerializer(serializers.Serializer):
    """Read-only view of a stamped finalization artifact."""

    application_id = serializers.UUIDField(read_only=True)
    document_hash = serializers.CharField(read_only=True)
    block_number = serializers.IntegerField(read_only=True)
    stamped_at = serializers.DateTimeField(read_only=True)
