"""
Login backend: citizens and officials sign in with whichever contact
detail they registered (username, phone number or email).

Registered first in ``settings.AUTHENTICATION_BACKENDS``; the plain
``ModelBackend`` after it still serves the admin site.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend

from .services import UserLookupService


class IdentifierBackend(ModelBackend):
    """Password check for the account ``identifier`` resolves to."""

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        if not identifier or password is None:
            return None

        user = UserLookupService.find_by_identifier(identifier)
        if user is None:
            # same hashing cost as a real check
            get_user_model()().set_password(password)
            return None
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
