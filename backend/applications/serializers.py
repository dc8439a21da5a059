"""
Applications app serializers.

Request and Response serializers for the Applications API.  Field
definitions and field-level validation only; lifecycle rules live in
``services.py``.

Structure
---------
1. Filter / query-param serializers
2. Application read serializers (list, detail, public tracking)
3. Write / action serializers (submit, transition, assign, mark solved)
4. History serializer
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from .models import Application, ApplicationStatus, ApplicationStatusLog, Priority


# ═══════════════════════════════════════════════════════════════════
#  1. Filter / Query-Parameter Serializers
# ═══════════════════════════════════════════════════════════════════


class ApplicationFilterSerializer(serializers.Serializer):
    """
    Validates query-parameter filters for ``GET /api/applications/``.

    All fields are optional.
    """

    status = serializers.ChoiceField(choices=ApplicationStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=Priority.choices, required=False)
    department = serializers.CharField(required=False, allow_blank=True)
    escalated = serializers.BooleanField(required=False, allow_null=True, default=None)


# ═══════════════════════════════════════════════════════════════════
#  2. Application Read Serializers
# ═══════════════════════════════════════════════════════════════════


class ApplicationListSerializer(serializers.ModelSerializer):
    """Compact row for list views."""

    handler_username = serializers.CharField(
        source="handler.username",
        read_only=True,
        default=None,
    )
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Application
        fields = [
            "id",
            "tracking_id",
            "application_type",
            "department",
            "status",
            "status_display",
            "priority",
            "escalation_level",
            "handler",
            "handler_username",
            "submitted_at",
            "last_updated_at",
            "sla_due_at",
            "is_solved",
        ]
        read_only_fields = fields


class ApplicationDetailSerializer(serializers.ModelSerializer):
    """Full application representation."""

    citizen_username = serializers.CharField(source="citizen.username", read_only=True)
    handler_username = serializers.CharField(
        source="handler.username",
        read_only=True,
        default=None,
    )
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    is_terminal = serializers.BooleanField(read_only=True)

    class Meta:
        model = Application
        fields = [
            "id",
            "tracking_id",
            "citizen",
            "citizen_username",
            "application_type",
            "description",
            "department",
            "sub_department",
            "handler",
            "handler_username",
            "status",
            "status_display",
            "is_terminal",
            "priority",
            "escalation_level",
            "is_solved",
            "submitted_at",
            "last_updated_at",
            "assigned_at",
            "approved_at",
            "sla_due_at",
            "auto_approval_deadline",
        ]
        read_only_fields = fields


class ApplicationTrackingSerializer(serializers.ModelSerializer):
    """Minimal public view returned by the tracking lookup."""

    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Application
        fields = [
            "tracking_id",
            "application_type",
            "department",
            "status",
            "status_display",
            "submitted_at",
            "last_updated_at",
        ]
        read_only_fields = fields


# ═══════════════════════════════════════════════════════════════════
#  3. Write / Action Serializers
# ═══════════════════════════════════════════════════════════════════


class ApplicationSubmitSerializer(serializers.Serializer):
    """
    Body of ``POST /api/applications/``.

    Either ``department`` or ``application_type`` is required; the
    department is derived from the type when omitted.
    """

    department = serializers.CharField(required=False, allow_blank=True, max_length=255)
    sub_department = serializers.CharField(required=False, allow_blank=True, max_length=255)
    application_type = serializers.CharField(required=False, allow_blank=True, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.ChoiceField(choices=Priority.choices, required=False, allow_null=True)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if not (attrs.get("department") or "").strip() and not (attrs.get("application_type") or "").strip():
            raise serializers.ValidationError(
                "Provide a department or an application type."
            )
        return attrs


class TransitionSerializer(serializers.Serializer):
    """Body of ``POST /api/applications/{id}/transition/``."""

    status = serializers.ChoiceField(choices=ApplicationStatus.choices)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class AssignSerializer(serializers.Serializer):
    """Body of ``POST /api/applications/{id}/assign/``."""

    handler_id = serializers.IntegerField(min_value=1)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class MarkSolvedSerializer(serializers.Serializer):
    """Body of ``POST /api/applications/{id}/mark-solved/``; omit ``is_solved`` to toggle."""

    is_solved = serializers.BooleanField(required=False, allow_null=True, default=None)


# ═══════════════════════════════════════════════════════════════════
#  4. History Serializer
# ═══════════════════════════════════════════════════════════════════


class ApplicationStatusLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = ApplicationStatusLog
        fields = [
            "id",
            "from_status",
            "to_status",
            "event",
            "actor",
            "changed_by",
            "message",
            "timestamp",
        ]
        read_only_fields = fields
