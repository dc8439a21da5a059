"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating test users.
  - ``make_role`` factory fixture: a role granted the given permissions.
  - ``create_handler`` factory fixture for department handlers.
  - ``auth_header`` fixture for authenticated requests (JWT).
"""

from __future__ import annotations

import pytest
from rest_framework.test import APIClient

from core.permissions_constants import ApplicationsPerms

HANDLER_CODENAMES = (
    ApplicationsPerms.CAN_BE_ASSIGNED_APPLICATION,
    ApplicationsPerms.CAN_PROCESS_APPLICATION,
    ApplicationsPerms.CAN_SCOPE_ASSIGNED_APPLICATIONS,
)
CITIZEN_CODENAMES = (
    ApplicationsPerms.CAN_SUBMIT_APPLICATION,
    ApplicationsPerms.CAN_SCOPE_OWN_APPLICATIONS,
)


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def make_role(db):
    """
    Factory fixture returning a ``Role`` holding the given
    ``applications`` permission codenames.

    Usage::

        role = make_role("Official", ApplicationsPerms.CAN_BE_ASSIGNED_APPLICATION)
    """
    from django.contrib.auth.models import Permission

    from accounts.models import Role

    def _factory(name: str, *codenames: str, app_label: str = ApplicationsPerms.APP_LABEL) -> Role:
        role, _ = Role.objects.get_or_create(name=name, defaults={"description": f"Test role: {name}"})
        if codenames:
            role.permissions.add(*Permission.objects.filter(
                content_type__app_label=app_label,
                codename__in=codenames,
            ))
        return role

    return _factory


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice")
            # or with all fields:
            user = create_user(
                username="bob",
                password="Str0ng!Pass",
                email="bob@example.com",
                phone_number="09121234567",
            )
    """
    from accounts.models import User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        phone_number: str | None = None,
        role=None,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"
        if phone_number is None:
            phone_number = f"0912{_counter:07d}"

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            phone_number=phone_number,
            is_active=is_active,
            role=role,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def create_citizen(create_user, make_role):
    """Factory for users holding the citizen permissions."""
    role = make_role("Citizen", *CITIZEN_CODENAMES)

    def _make(**kwargs):
        return create_user(role=role, **kwargs)

    return _make


@pytest.fixture()
def create_handler(create_user, make_role):
    """
    Factory for department handlers.

    Usage::

        handler = create_handler(department="Health", hierarchy_level=2)
    """
    role = make_role("Official", *HANDLER_CODENAMES)

    def _make(*, department: str = "Health", hierarchy_level: int = 1, **kwargs):
        return create_user(
            role=role,
            department=department,
            hierarchy_level=hierarchy_level,
            **kwargs,
        )

    return _make


@pytest.fixture()
def auth_header(create_user):
    """
    Returns a helper function that creates a user and returns an
    ``Authorization`` header dict with a valid JWT access token.

    Usage::

        def test_protected(auth_header, api_client):
            header = auth_header(username="alice")
            api_client.credentials(HTTP_AUTHORIZATION=header["Authorization"])
            resp = api_client.get("/api/core/notifications/")
            assert resp.status_code != 401

    The returned dict looks like::

        {"Authorization": "Bearer eyJ..."}
    """
    from rest_framework_simplejwt.tokens import AccessToken

    def _make(
        *,
        username: str | None = None,
        role=None,
        **user_kwargs,
    ) -> dict[str, str]:
        user = create_user(username=username, role=role, **user_kwargs)
        token = AccessToken.for_user(user)
        return {"Authorization": f"Bearer {token}"}

    return _make
