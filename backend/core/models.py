"""
Core app models.

Provides abstract base models and the cross-app records that the
application lifecycle writes to without owning: user notifications and
finalization artifacts.
"""

from django.conf import settings
from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base model that provides self-updating ``created_at`` and
    ``updated_at`` timestamp fields for every concrete child model.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At",
    )

    class Meta:
        abstract = True


class Notification(TimeStampedModel):
    """
    System notification sent to a user about an application event
    (submission, assignment, escalation, decision, staleness reminder).

    ``event_type`` keeps the machine-readable key next to the rendered
    title/message so clients can filter.  ``application_id`` references
    the related application without a hard foreign key; the generic
    relation covers any other source object.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Recipient",
    )
    event_type = models.CharField(
        max_length=50,
        blank=True,
        default="",
        verbose_name="Event Type",
        db_index=True,
    )
    title = models.CharField(max_length=255, verbose_name="Title")
    message = models.TextField(verbose_name="Message")
    is_read = models.BooleanField(default=False, verbose_name="Read")
    application_id = models.UUIDField(
        null=True,
        blank=True,
        verbose_name="Related Application",
    )

    # Generic relation to the object that triggered the notification
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        verbose_name="Related Content Type",
    )
    object_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        verbose_name="Related Object ID",
    )
    content_object = GenericForeignKey("content_type", "object_id")

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx"),
        ]

    def __str__(self):
        return f"[{self.recipient}] {self.title}"


class FinalizationArtifact(models.Model):
    """
    Tamper-evidence stamp issued once per application that reaches an
    approval status (``approved`` or ``auto_approved``).

    ``application_id`` is unique: at most one artifact per application,
    which is what makes stamping idempotent.  ``block_number`` is a
    monotonically increasing ledger position.
    """

    application_id = models.UUIDField(
        unique=True,
        verbose_name="Application",
    )
    document_hash = models.CharField(
        max_length=64,
        verbose_name="Document Hash (SHA-256)",
    )
    block_number = models.PositiveIntegerField(
        unique=True,
        verbose_name="Block Number",
    )
    stamped_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Stamped At",
    )

    class Meta:
        verbose_name = "Finalization Artifact"
        verbose_name_plural = "Finalization Artifacts"
        ordering = ["block_number"]

    def __str__(self):
        return f"Block #{self.block_number} — {self.application_id}"
