"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service function / method, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``UserLookupService``        — resolve a login identifier to one account.
- ``HandlerDirectoryService``  — handler listing with live workload.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db.models import Q

from core.domain.access import require_permission
from core.permissions_constants import AccountsPerms, ApplicationsPerms

if TYPE_CHECKING:
    from .models import User

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  User Lookup Service
# ═══════════════════════════════════════════════════════════════════


class UserLookupService:
    """Maps whatever a person typed into the login form to an account."""

    @staticmethod
    def find_by_identifier(identifier: str) -> User | None:
        """
        The single account whose username or phone number equals
        ``identifier``, or whose email matches it case-insensitively.

        Returns ``None`` when nothing matches, and also when the value
        is ambiguous (one user's username is another user's email).
        """
        value = (identifier or "").strip()
        if not value:
            return None

        matches = list(
            get_user_model().objects
            .select_related("role")
            .filter(Q(username=value) | Q(phone_number=value) | Q(email__iexact=value))[:2]
        )
        if len(matches) != 1:
            if matches:
                logger.warning("Login identifier %r matches more than one account", value)
            return None
        return matches[0]


# ═══════════════════════════════════════════════════════════════════
#  Handler Directory Service
# ═══════════════════════════════════════════════════════════════════


class HandlerDirectoryService:
    """
    Read-only view of the handler pool for administrators.

    Each returned handler carries an ``active_workload_count`` attribute
    computed fresh from the applications table; it is never read from a
    stored column.
    """

    @staticmethod
    def list_handlers(requesting_user: User, department: str | None = None) -> list[User]:
        """
        Return all active handlers, optionally restricted to one
        department (short-form comparison), ordered by department then
        tier.

        Raises
        ------
        PermissionDenied
            If the requester can neither manage users nor assign
            applications.
        """
        from applications.assignment import (
            active_workload_counts,
            handler_queryset,
            normalize_department,
        )

        require_permission(
            requesting_user,
            AccountsPerms.full(AccountsPerms.CAN_MANAGE_USERS),
            ApplicationsPerms.full(ApplicationsPerms.CAN_ASSIGN_APPLICATION),
            message="Only administrators can list handlers.",
        )

        handlers = list(
            handler_queryset().order_by("department", "hierarchy_level", "username")
        )
        if department:
            wanted = normalize_department(department)
            handlers = [h for h in handlers if normalize_department(h.department) == wanted]

        workloads = active_workload_counts([h.pk for h in handlers])
        for handler in handlers:
            handler.active_workload_count = workloads.get(handler.pk, 0)
        return handlers
