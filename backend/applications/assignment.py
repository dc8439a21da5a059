"""
applications.assignment — Handler selection.

Two pure selection functions over an in-memory handler pool:

``select_handler``
    Initial routing.  Department match (short-form), sub-department as a
    preference, then the least-loaded handler.

``select_escalation_handler``
    Escalation routing.  Same department, strictly higher tier than the
    current one, lowest sufficient tier first.

Both orderings are total: the last key is the primary key, so two
distinct handlers never compare equal and the same pool plus the same
workload snapshot always yields the same handler.

Active workload is never stored.  ``active_workload_counts`` counts it
from the applications table on every call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from django.contrib.auth import get_user_model
from django.db.models import Count, QuerySet

from core.permissions_constants import ApplicationsPerms

from .conf import lifecycle_settings
from .models import ACTIVE_WORKLOAD_STATUSES, Application

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)

#: Tier assumed for an application without a current handler.
DEFAULT_TIER: int = 1


def normalize_department(value: str | None, separator: str | None = None) -> str:
    """
    Short-form department key: the text before the separator, trimmed.

    ``"Health – Ministry of Health"`` → ``"Health"``.  Comparison is
    case-sensitive.
    """
    if not value:
        return ""
    if separator is None:
        separator = lifecycle_settings().department_separator
    return value.split(separator, 1)[0].strip()


def handler_queryset() -> QuerySet:
    """Active users whose role grants the assignable permission."""
    User = get_user_model()
    return (
        User.objects.filter(
            is_active=True,
            role__permissions__content_type__app_label=ApplicationsPerms.APP_LABEL,
            role__permissions__codename=ApplicationsPerms.CAN_BE_ASSIGNED_APPLICATION,
        )
        .distinct()
    )


def active_workload_counts(handler_ids: Iterable) -> dict:
    """
    Map each handler id to its number of ``assigned`` / ``in_progress``
    applications.  Handlers with no such application map to 0.
    """
    ids = list(handler_ids)
    if not ids:
        return {}
    counts = {pk: 0 for pk in ids}
    rows = (
        Application.objects
        .filter(handler_id__in=ids, status__in=ACTIVE_WORKLOAD_STATUSES)
        .values("handler_id")
        .annotate(n=Count("id"))
    )
    for row in rows:
        counts[row["handler_id"]] = row["n"]
    return counts


def _in_department(pool: Iterable[User], department: str) -> list[User]:
    wanted = normalize_department(department)
    if not wanted:
        return []
    return [h for h in pool if normalize_department(h.department) == wanted]


def select_handler(
    department: str | None,
    sub_department: str | None,
    pool: Sequence[User],
    workloads: dict | None = None,
) -> User | None:
    """
    Pick the handler for a new application, or ``None`` if the
    department has nobody to route to.

    Parameters
    ----------
    department : str
        Required for a match; may carry a long-form suffix.
    sub_department : str | None
        Exact-match preference.  Ignored when no department handler
        has it.
    pool : sequence of User
        Candidate handlers.
    workloads : dict | None
        ``{handler_id: active_workload}`` snapshot.  Counted fresh when
        omitted.

    Ordering
    --------
    ``(active workload, total_assigned_count, date_joined, pk)``, all
    ascending.
    """
    candidates = _in_department(pool, department)
    if sub_department:
        preferred = [h for h in candidates if h.sub_department == sub_department]
        if preferred:
            candidates = preferred

    if not candidates:
        logger.info("No eligible handler for department=%r sub_department=%r", department, sub_department)
        return None

    if workloads is None:
        workloads = active_workload_counts(h.pk for h in candidates)

    return min(
        candidates,
        key=lambda h: (
            workloads.get(h.pk, 0),
            h.total_assigned_count,
            h.date_joined,
            h.pk,
        ),
    )


def select_escalation_handler(
    department: str | None,
    current_tier: int,
    pool: Sequence[User],
    workloads: dict | None = None,
) -> User | None:
    """
    Pick the handler an overdue application escalates to, or ``None``
    when the department has no tier above ``current_tier``.

    Ordering: ``(hierarchy_level, active workload, total_assigned_count,
    date_joined, pk)``, all ascending, so the lowest sufficient tier
    wins.
    """
    candidates = [
        h for h in _in_department(pool, department)
        if h.hierarchy_level > current_tier
    ]
    if not candidates:
        return None

    if workloads is None:
        workloads = active_workload_counts(h.pk for h in candidates)

    return min(
        candidates,
        key=lambda h: (
            h.hierarchy_level,
            workloads.get(h.pk, 0),
            h.total_assigned_count,
            h.date_joined,
            h.pk,
        ),
    )
