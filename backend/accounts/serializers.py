"""
Accounts app serializers.

Contains all Request and Response serializers for the accounts API.
Serializers handle field definitions, read/write constraints, and
basic validation.  **No business logic** lives here — all domain
rules are delegated to ``services.py``.
"""

from __future__ import annotations

from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.domain.access import get_user_role_name

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``IdentifierBackend``.
    3. Injects RBAC claims (``role``, ``is_handler``,
       ``permissions_list``) into the JWT access token payload.
    """

    # Override the default username field with our multi-field identifier
    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, Phone Number, or Email.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)

        token["role"] = get_user_role_name(user)
        token["is_handler"] = user.is_handler
        token["permissions_list"] = user.permissions_list

        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Authenticate using the custom ``IdentifierBackend``.

        Returns a dict containing ``access`` and ``refresh``; the
        authenticated user is attached as ``self.user``.
        """
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class UserDetailSerializer(serializers.ModelSerializer):
    """
    User representation returned next to the login tokens.

    ``permissions`` is a read-only flat list such as:
        ['applications.can_submit_application', 'core.view_notification', ...]
    """

    role_name = serializers.CharField(
        source="role.name",
        read_only=True,
        default=None,
    )
    permissions = serializers.ListField(
        child=serializers.CharField(),
        source="permissions_list",
        read_only=True,
        help_text="Flat list of 'app_label.codename' permission strings.",
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "role",
            "role_name",
            "department",
            "sub_department",
            "hierarchy_level",
            "permissions",
        ]
        read_only_fields = fields


class HandlerSerializer(serializers.ModelSerializer):
    """
    Handler row for the administrative directory.

    ``active_workload_count`` is attached by
    ``HandlerDirectoryService.list_handlers``.
    """

    active_workload_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "first_name",
            "last_name",
            "department",
            "sub_department",
            "hierarchy_level",
            "rating",
            "total_assigned_count",
            "active_workload_count",
            "date_joined",
        ]
        read_only_fields = fields
