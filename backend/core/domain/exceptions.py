"""
core.domain.exceptions — Domain-specific exception hierarchy.

These exceptions represent business-rule violations inside service layers.
They are deliberately **not** DRF exceptions so that the lifecycle engine
can be driven from the scheduler, management commands and tests without
an HTTP request.  ``core.domain.exception_handler`` maps them to
responses at the API boundary.

Mapping cheatsheet
------------------
┌─────────────────────┬──────────────────────────────┬──────┐
│ Domain Exception    │ DRF / HTTP equivalent        │ Code │
├─────────────────────┼──────────────────────────────┼──────┤
│ DomainError         │ ValidationError / 400        │ 400  │
│ PermissionDenied    │ PermissionDenied / 403       │ 403  │
│ NotFound            │ NotFound / 404               │ 404  │
│ Conflict            │ APIException / 409           │ 409  │
│ InvalidTransition   │ APIException / 409           │ 409  │
│ django DatabaseError│ APIException / 503 (retry)   │ 503  │
└─────────────────────┴──────────────────────────────┴──────┘

Transient repository failures are not wrapped: Django's
``DatabaseError`` family already plays that role.  Request-triggered
callers let it propagate; the periodic jobs catch it per item.

"No eligible handler" is **not** an exception — the selector returns
``None`` and the application stays ``submitted``.

Recommended usage inside a service::

    from core.domain.exceptions import InvalidTransition

    if application.is_terminal:
        raise InvalidTransition(
            current=application.status,
            target=new_status,
            reason="The application is closed.",
        )
"""

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for all domain / business-rule errors.

    Catch this at the view boundary and convert to a 400 Bad Request.
    """

    def __init__(self, message: str = "A business rule was violated.") -> None:
        self.message = message
        super().__init__(self.message)


class PermissionDenied(DomainError):
    """
    The authenticated user does not have the required permission, or is
    not the owner / current handler of the application.

    Maps to HTTP 403.
    """

    def __init__(self, message: str = "You do not have permission to perform this action.") -> None:
        super().__init__(message)


class NotFound(DomainError):
    """
    The requested resource does not exist (or is not visible to the
    requesting user given their scope).

    Maps to HTTP 404.
    """

    def __init__(self, message: str = "The requested resource was not found.") -> None:
        super().__init__(message)


class Conflict(DomainError):
    """
    The operation conflicts with the current state of the resource.

    Maps to HTTP 409.
    """

    def __init__(self, message: str = "The operation conflicts with the current state.") -> None:
        super().__init__(message)


class InvalidTransition(Conflict):
    """
    A lifecycle mutation that is not allowed from the current status:
    any mutation of a terminal application, an unknown status name, or
    a move missing from the transition table.

    Never retried automatically.  Maps to HTTP 409.

    Example::

        raise InvalidTransition(
            current="approved",
            target="in_progress",
            reason="The application is closed.",
        )
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        current: str | None = None,
        target: str | None = None,
        reason: str | None = None,
    ) -> None:
        if message is None:
            parts = ["Invalid state transition"]
            if current and target:
                parts.append(f"from '{current}' to '{target}'")
            if reason:
                parts.append(f"({reason})")
            message = " ".join(parts) + "."
        super().__init__(message)
        self.current = current
        self.target = target
        self.reason = reason
