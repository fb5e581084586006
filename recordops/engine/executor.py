# recordops/engine/executor.py
from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Sequence

from recordops.engine.planner import plan_batches
from recordops.engine.progress import ProgressStream, ProgressTracker
from recordops.engine.retry import RetryPolicy, with_retry
from recordops.models.stats import BatchInfo, MatchedRecord, ProgressInfo, StatsAccumulator
from recordops.store.base import BatchOperation, DeleteOp, DocumentStore, SetOp

logger = logging.getLogger("bulk.delete")


def log_event(action: str, collection: str, extra: dict) -> None:
    payload = {"action": action, "collection": collection, **(extra or {})}
    logger.info("bulk.delete %s", action, extra={"event": payload})


def format_batch_error(
    batch_number: int, total_batches: int, attempt: int, max_attempts: int, err: BaseException
) -> str:
    msg = str(err) or type(err).__name__
    return f"Batch {batch_number}/{total_batches} (Attempt {attempt}/{max_attempts}): {msg}"


def delete_ops(batch: Sequence[MatchedRecord]) -> List[BatchOperation]:
    return [DeleteOp(r.id) for r in batch]


def set_ops(batch: Sequence[MatchedRecord]) -> List[BatchOperation]:
    return [SetOp(r.id, dict(r.fields)) for r in batch]


class MutationExecutor:
    """
    Commits planned batches strictly in order, one at a time.

    Each batch is atomic (all-or-nothing) and retried with exponential backoff;
    a batch that exhausts its attempts is counted as failed and the run moves on
    to the next batch. A fixed pause separates batches to stay under the
    store's write-rate ceiling.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        *,
        batch_size: int,
        policy: RetryPolicy,
        inter_batch_delay: float = 0.1,
        make_ops: Callable[[Sequence[MatchedRecord]], List[BatchOperation]] = delete_ops,
        on_progress: Optional[Callable[[ProgressInfo], None]] = None,
        on_batch_complete: Optional[Callable[[BatchInfo], None]] = None,
        progress_stream: Optional[ProgressStream] = None,
        action: str = "delete",
    ):
        self.store = store
        self.collection = collection
        self.batch_size = batch_size
        self.policy = policy
        self.inter_batch_delay = inter_batch_delay
        self.make_ops = make_ops
        self.on_progress = on_progress
        self.on_batch_complete = on_batch_complete
        self.progress_stream = progress_stream
        self.action = action
        # records whose batch committed, in batch order
        self.committed: List[MatchedRecord] = []

    def run(self, records: Sequence[MatchedRecord], stats: StatsAccumulator) -> StatsAccumulator:
        batches = plan_batches(records, self.batch_size)
        self.committed = []
        total_batches = len(batches)
        tracker = ProgressTracker(stats.found, self.batch_size, total_batches)

        for index, batch in enumerate(batches):
            batch_number = index + 1
            ops = self.make_ops(batch)
            attempt_errors: List[str] = []

            def _on_fail(attempt: int, err: BaseException) -> None:
                attempt_errors.append(
                    format_batch_error(
                        batch_number, total_batches, attempt, self.policy.max_attempts, err
                    )
                )

            result = with_retry(
                lambda: self.store.commit_batch(self.collection, ops),
                self.policy,
                on_attempt_failed=_on_fail,
            )

            if result.ok:
                self.committed.extend(batch)
                stats.deleted += len(batch)
                stats.batches_processed += 1
                log_event(
                    f"{self.action}.batch.ok",
                    self.collection,
                    {
                        "batch": batch_number,
                        "total_batches": total_batches,
                        "items": len(batch),
                        "attempts": result.attempts,
                    },
                )
                self._batch_complete(
                    BatchInfo(
                        batch_number=batch_number,
                        total_batches=total_batches,
                        items_in_batch=len(batch),
                        success_count=len(batch),
                        failure_count=0,
                        errors=(),
                    )
                )
                self._progress(tracker.snapshot(stats.deleted, batch_number))
            else:
                stats.failed += len(batch)
                stats.batches_processed += 1
                # one audit entry per failed batch: the final attempt
                stats.errors.append(attempt_errors[-1])
                log_event(
                    f"{self.action}.batch.failed",
                    self.collection,
                    {
                        "batch": batch_number,
                        "total_batches": total_batches,
                        "items": len(batch),
                        "attempts": result.attempts,
                        "error": str(result.last_error),
                    },
                )
                self._batch_complete(
                    BatchInfo(
                        batch_number=batch_number,
                        total_batches=total_batches,
                        items_in_batch=len(batch),
                        success_count=0,
                        failure_count=len(batch),
                        errors=tuple(attempt_errors),
                    )
                )

            if batch_number < total_batches and self.inter_batch_delay > 0:
                time.sleep(self.inter_batch_delay)

        return stats

    def _batch_complete(self, info: BatchInfo) -> None:
        if self.on_batch_complete is not None:
            self.on_batch_complete(info)

    def _progress(self, info: ProgressInfo) -> None:
        if self.on_progress is not None:
            self.on_progress(info)
        if self.progress_stream is not None:
            self.progress_stream.publish(info)
