# recordops/engine/undo.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from recordops.engine.executor import MutationExecutor, set_ops
from recordops.engine.retry import RetryPolicy
from recordops.models.conditions import Condition
from recordops.models.stats import MatchedRecord, StatsAccumulator, UndoSnapshot
from recordops.store.base import DocumentStore

logger = logging.getLogger("bulk.undo")


class UndoManager:
    """
    Single-level undo. Holds at most one snapshot (last delete wins); the
    snapshot lives in process memory only and is lost on restart.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._snapshot: Optional[UndoSnapshot] = None

    @property
    def snapshot(self) -> Optional[UndoSnapshot]:
        return self._snapshot

    @property
    def can_undo(self) -> bool:
        return self._snapshot is not None

    def capture_snapshot(
        self,
        collection: str,
        conditions: Sequence[Condition],
        records: Sequence[MatchedRecord],
    ) -> UndoSnapshot:
        """Replace any previous snapshot with the given match-time records."""
        if self._snapshot is not None:
            logger.info(
                "discarding previous undo snapshot (%s, %d records)",
                self._snapshot.collection,
                self._snapshot.size,
            )
        self._snapshot = UndoSnapshot(
            collection=collection,
            conditions=tuple(conditions),
            captured_at=datetime.now(timezone.utc),
            records=tuple(records),
        )
        return self._snapshot

    def clear(self) -> None:
        self._snapshot = None

    def restore(
        self,
        *,
        batch_size: int,
        policy: RetryPolicy,
        inter_batch_delay: float = 0.0,
    ) -> bool:
        """
        Re-insert every captured record in batched set-writes.
        Clears the snapshot when every batch committed; keeps it otherwise so the
        restore can be attempted again (set-writes are idempotent).
        """
        snap = self._snapshot
        if snap is None:
            return False

        stats = StatsAccumulator(found=snap.size)
        MutationExecutor(
            self.store,
            snap.collection,
            batch_size=batch_size,
            policy=policy,
            inter_batch_delay=inter_batch_delay,
            make_ops=set_ops,
            action="undo",
        ).run(snap.records, stats)

        if stats.failed:
            logger.error(
                "undo restore incomplete for %s: restored=%d failed=%d errors=%s",
                snap.collection,
                stats.deleted,
                stats.failed,
                stats.errors,
            )
            return False

        logger.info("restored %d records into %s", stats.deleted, snap.collection)
        self._snapshot = None
        return True
