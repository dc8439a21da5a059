"""Shared builders for the applications test-suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from itertools import count

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission

from accounts.models import Role
from core.permissions_constants import ApplicationsPerms

User = get_user_model()

PASSWORD = "Casew0rk!Pass"

#: Fixed clock for time-driven tests.
T0 = datetime(2025, 3, 3, 9, 0, tzinfo=dt_timezone.utc)

_seq = count(1)


def make_role(name: str, *codenames: str) -> Role:
    role, _ = Role.objects.get_or_create(
        name=name,
        defaults={"description": f"Test role: {name}"},
    )
    if codenames:
        role.permissions.add(*Permission.objects.filter(
            content_type__app_label=ApplicationsPerms.APP_LABEL,
            codename__in=codenames,
        ))
    return role


def citizen_role() -> Role:
    return make_role(
        "Citizen",
        ApplicationsPerms.CAN_SUBMIT_APPLICATION,
        ApplicationsPerms.CAN_SCOPE_OWN_APPLICATIONS,
    )


def official_role() -> Role:
    return make_role(
        "Official",
        ApplicationsPerms.CAN_BE_ASSIGNED_APPLICATION,
        ApplicationsPerms.CAN_PROCESS_APPLICATION,
        ApplicationsPerms.CAN_SCOPE_ASSIGNED_APPLICATIONS,
    )


def admin_role() -> Role:
    return make_role(
        "Administrator",
        ApplicationsPerms.CAN_ASSIGN_APPLICATION,
        ApplicationsPerms.CAN_RUN_LIFECYCLE_JOBS,
        ApplicationsPerms.CAN_SCOPE_ALL_APPLICATIONS,
    )


def make_user(role: Role | None = None, *, username: str | None = None, **fields) -> User:
    n = next(_seq)
    username = username or f"user{n}"
    return User.objects.create_user(
        username=username,
        password=PASSWORD,
        email=f"{username}@casework.test",
        phone_number=f"0915{n:07d}",
        role=role,
        **fields,
    )


def make_citizen(**fields) -> User:
    return make_user(citizen_role(), **fields)


def make_handler(department: str = "Health", hierarchy_level: int = 1, **fields) -> User:
    return make_user(
        official_role(),
        department=department,
        hierarchy_level=hierarchy_level,
        **fields,
    )


def make_admin(**fields) -> User:
    return make_user(admin_role(), **fields)


def hours(n: float) -> timedelta:
    return timedelta(hours=n)
