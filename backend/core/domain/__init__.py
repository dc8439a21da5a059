"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions     Domain-specific exceptions that map cleanly to HTTP responses.
notifications  Best-effort notification creation helper.
finalization   Idempotent finalization-artifact stamping.
transactions   Helpers for ``transaction.atomic`` + ``select_for_update``.
access         Permission-scoped queryset selectors.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.notifications import NotificationService
    from core.domain.finalization import FinalizationService
    from core.domain.transactions import lock_for_update
    from core.domain.access import apply_permission_scope
"""
