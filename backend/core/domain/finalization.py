"""
core.domain.finalization — Finalization-artifact stamping.

An application that reaches an approval status gets exactly one
tamper-evidence stamp: a SHA-256 digest of its id and the stamping
time, recorded at the next ledger block number.

Stamping is idempotent.  ``stamp`` first checks for an existing
artifact and returns it unchanged.  Concurrent stampers are settled by
the two unique constraints on ``FinalizationArtifact``:

- same application: the loser finds the winner's artifact and returns it;
- same block number: the loser re-reads the ledger head and takes the
  next free block.

Each insert runs in its own savepoint, so a collision never poisons the
caller's transaction.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

logger = logging.getLogger(__name__)


class FinalizationService:
    """Stateless helper that issues ``FinalizationArtifact`` records."""

    #: Insert attempts before a block-number collision is given up on.
    MAX_ATTEMPTS: int = 5

    @staticmethod
    def _next_block_number() -> int:
        from core.models import FinalizationArtifact

        last = FinalizationArtifact.objects.aggregate(last=Max("block_number"))["last"]
        return (last or 0) + 1

    @classmethod
    def stamp(cls, application_id: Any):
        """
        Issue the artifact for ``application_id`` and return it.

        If an artifact already exists it is returned as-is and no new
        block is written.

        Returns
        -------
        FinalizationArtifact

        Raises
        ------
        IntegrityError
            The ledger head kept moving for ``MAX_ATTEMPTS`` inserts.
        """
        from core.models import FinalizationArtifact

        existing = FinalizationArtifact.objects.filter(application_id=application_id).first()
        if existing is not None:
            logger.debug(
                "Application %s already stamped at block #%d",
                application_id,
                existing.block_number,
            )
            return existing

        stamped_at = timezone.now()
        document_hash = hashlib.sha256(
            f"{application_id}{stamped_at.isoformat()}".encode("utf-8")
        ).hexdigest()

        for attempt in range(1, cls.MAX_ATTEMPTS + 1):
            block_number = cls._next_block_number()
            try:
                with transaction.atomic():
                    artifact = FinalizationArtifact.objects.create(
                        application_id=application_id,
                        document_hash=document_hash,
                        block_number=block_number,
                    )
            except IntegrityError:
                existing = FinalizationArtifact.objects.filter(application_id=application_id).first()
                if existing is not None:
                    return existing
                if attempt == cls.MAX_ATTEMPTS:
                    raise
                logger.warning(
                    "Block #%d taken while stamping application %s; retrying (attempt %d)",
                    block_number, application_id, attempt,
                )
                continue

            logger.info(
                "Stamped application %s at block #%d (hash %s)",
                application_id,
                artifact.block_number,
                document_hash[:12],
            )
            return artifact
