"""
core.domain.transactions — Helpers for safe state transitions.

Wraps ``transaction.atomic`` and ``select_for_update`` into reusable
patterns so that every mutation of an application follows the same
concurrency-safe approach.

Design goals
------------
* State-transition reads always lock the row first
  (``select_for_update``) so two writers to the same application are
  serialized and neither succeeds against a stale read.
* Shared counters are incremented in the database (``F()`` expression)
  inside the caller's transaction, never read-then-written in Python.
* Side effects that must not undo a committed decision (notifications,
  artifact stamping) run inside their own savepoint via ``best_effort``.

Usage::

    from core.domain.transactions import best_effort, increment_field, lock_for_update

    with transaction.atomic():
        application = lock_for_update(Application, application_id)
        ...
        increment_field(User, handler.pk, "total_assigned_count")

        with best_effort("notify handler", application_id=application.pk):
            NotificationService.create(...)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, TypeVar

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import F

from core.domain.exceptions import NotFound

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=models.Model)


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except (model_class.DoesNotExist, ValidationError, ValueError):
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")


def increment_field(model_class: type[models.Model], pk: Any, field: str, by: int = 1) -> int:
    """
    Atomically add ``by`` to an integer column and return the new value.

    The increment is a single ``UPDATE ... SET field = field + by``
    statement, so concurrent callers cannot under-count.  Call it inside
    the same ``atomic()`` block as the write it belongs to.

    Raises:
        NotFound: If no row with that PK exists.
    """
    updated = model_class.objects.filter(pk=pk).update(**{field: F(field) + by})
    if not updated:
        raise NotFound(f"{model_class.__name__} with pk={pk} does not exist.")
    return model_class.objects.values_list(field, flat=True).get(pk=pk)


@contextmanager
def best_effort(description: str, **context: Any) -> Iterator[None]:
    """
    Run a side effect inside its own savepoint and log, not raise, on failure.

    A failure rolls back only the savepoint; the enclosing transaction
    (the status change that triggered the side effect) stays intact.
    """
    try:
        with transaction.atomic():
            yield
    except Exception:
        logger.exception("Best-effort step failed: %s %s", description, context)
