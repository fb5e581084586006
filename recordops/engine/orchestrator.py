# recordops/engine/orchestrator.py
from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence

from recordops.engine.executor import MutationExecutor, log_event
from recordops.engine.previewer import preview
from recordops.engine.progress import estimate_delete_time
from recordops.engine.query_builder import build_query, validate_conditions
from recordops.engine.retry import RetryPolicy
from recordops.engine.undo import UndoManager
from recordops.exceptions import (
    ConditionValidationError,
    EngineBusyError,
    QueryFailedError,
)
from recordops.models.conditions import Condition, Operator
from recordops.models.stats import (
    BulkDeleteOptions,
    DeleteStats,
    MatchedRecord,
    StatsAccumulator,
)
from recordops.store.base import DocumentStore


class EngineState(str, Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    DELETING = "deleting"
    RESTORING = "restoring"


def _check_options(opts: BulkDeleteOptions) -> None:
    if not isinstance(opts.batch_size, int) or opts.batch_size < 1:
        raise ConditionValidationError("batch_size must be an integer >= 1")
    if not isinstance(opts.max_retries, int) or opts.max_retries < 1:
        raise ConditionValidationError("max_retries must be an integer >= 1")
    if opts.retry_delay < 0 or opts.inter_batch_delay < 0:
        raise ConditionValidationError("retry_delay/inter_batch_delay must be >= 0")


class BulkDeleteEngine:
    """
    Conditional bulk delete: match -> (dry run) -> snapshot -> batched delete.

    One mutation (delete or undo restore) at a time per engine; a concurrent
    call is rejected with EngineBusyError. Previews are read-only and may run
    at any time.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        defaults: Optional[BulkDeleteOptions] = None,
        table_allowlist: Iterable[str] = (),
    ):
        self.store = store
        self.defaults = defaults or BulkDeleteOptions()
        self.table_allowlist = tuple(table_allowlist or ())
        self._undo = UndoManager(store)
        self._mutation_lock = threading.Lock()
        self._state = EngineState.IDLE
        self._previews = 0
        self._state_lock = threading.Lock()
        self.error: Optional[str] = None
        self.last_stats: Optional[DeleteStats] = None

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------
    @property
    def state(self) -> EngineState:
        with self._state_lock:
            if self._state is not EngineState.IDLE:
                return self._state
            return EngineState.PREVIEWING if self._previews else EngineState.IDLE

    @property
    def is_deleting(self) -> bool:
        return self._mutation_lock.locked()

    @property
    def is_loading(self) -> bool:
        with self._state_lock:
            return self._previews > 0

    @property
    def can_undo(self) -> bool:
        return self._undo.can_undo

    @property
    def undo_snapshot(self):
        return self._undo.snapshot

    @contextmanager
    def _mutating(self, state: EngineState):
        if not self._mutation_lock.acquire(blocking=False):
            raise EngineBusyError(f"engine is busy ({self.state.value})")
        with self._state_lock:
            self._state = state
        try:
            yield
        finally:
            with self._state_lock:
                self._state = EngineState.IDLE
            self._mutation_lock.release()

    @contextmanager
    def _previewing(self):
        with self._state_lock:
            self._previews += 1
        try:
            yield
        finally:
            with self._state_lock:
                self._previews -= 1

    def reset(self) -> None:
        if not self._mutation_lock.acquire(blocking=False):
            raise EngineBusyError("cannot reset while an operation is in flight")
        try:
            self.error = None
            self.last_stats = None
            self._undo.clear()
        finally:
            self._mutation_lock.release()

    # ------------------------------------------------------------------
    # utilities
    # ------------------------------------------------------------------
    def validate_conditions(self, conditions: Sequence[Condition]) -> Optional[str]:
        return validate_conditions(conditions)

    def estimate_delete_time(self, item_count: int, batch_size: Optional[int] = None) -> float:
        return estimate_delete_time(item_count, batch_size or self.defaults.batch_size)

    def _options(self, options: Optional[BulkDeleteOptions]) -> BulkDeleteOptions:
        return options if options is not None else BulkDeleteOptions(
            batch_size=self.defaults.batch_size,
            max_retries=self.defaults.max_retries,
            retry_delay=self.defaults.retry_delay,
            inter_batch_delay=self.defaults.inter_batch_delay,
        )

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def preview_delete(
        self, collection: str, conditions: Sequence[Condition]
    ) -> List[MatchedRecord]:
        """Records that a delete with these conditions would remove. No side effects."""
        query = build_query(collection, conditions, allowlist=self.table_allowlist)
        with self._previewing():
            try:
                return preview(self.store, query)
            except Exception as e:  # noqa: BLE001 - any store failure is terminal here
                # previews run beside mutations; engine state is left alone
                raise QueryFailedError(str(e) or type(e).__name__) from e

    def execute_delete(
        self,
        collection: str,
        conditions: Sequence[Condition],
        options: Optional[BulkDeleteOptions] = None,
    ) -> DeleteStats:
        """
        Delete every record matching conditions, in batches.

        Raises ConditionValidationError (nothing touched), EngineBusyError, or
        QueryFailedError when the match phase fails. Per-batch failures do not
        raise: check the returned stats' `failed` and `errors`.
        """
        opts = self._options(options)
        try:
            with self._mutating(EngineState.DELETING):
                try:
                    _check_options(opts)
                    query = build_query(collection, conditions, allowlist=self.table_allowlist)
                except ConditionValidationError as e:
                    self.error = str(e)
                    raise
                return self._run_delete(query.collection, conditions, query, opts)
        finally:
            if opts.progress_stream is not None:
                opts.progress_stream.close()

    def _run_delete(self, collection, conditions, query, opts: BulkDeleteOptions) -> DeleteStats:
        self.error = None
        started = time.monotonic()
        stats = StatsAccumulator()

        try:
            records = preview(self.store, query)
        except Exception as e:  # noqa: BLE001 - terminal: nothing mutated yet
            msg = str(e) or type(e).__name__
            stats.errors.append(msg)
            self.error = msg
            self.last_stats = stats.freeze(time.monotonic() - started)
            log_event("query.failed", collection, {"error": msg})
            raise QueryFailedError(msg, stats=self.last_stats) from e

        stats.found = len(records)
        log_event(
            "matched",
            collection,
            {"found": stats.found, "dry_run": opts.dry_run, "batch_size": opts.batch_size},
        )

        if stats.found == 0 or opts.dry_run:
            self.last_stats = stats.freeze(time.monotonic() - started)
            return self.last_stats

        executor = MutationExecutor(
            self.store,
            collection,
            batch_size=opts.batch_size,
            policy=RetryPolicy(max_attempts=opts.max_retries, base_delay=opts.retry_delay),
            inter_batch_delay=opts.inter_batch_delay,
            on_progress=opts.on_progress,
            on_batch_complete=opts.on_batch_complete,
            progress_stream=opts.progress_stream,
        )
        executor.run(records, stats)

        if opts.enable_undo and executor.committed:
            # match-time values of the committed batches only; no second read
            self._undo.capture_snapshot(collection, conditions, executor.committed)

        self.last_stats = stats.freeze(time.monotonic() - started)
        if stats.failed:
            self.error = f"{stats.failed} of {stats.found} records failed to delete"
        log_event(
            "done",
            collection,
            {
                "found": stats.found,
                "deleted": stats.deleted,
                "failed": stats.failed,
                "batches": stats.batches_processed,
                "duration_ms": int(self.last_stats.duration * 1000),
            },
        )
        return self.last_stats

    def quick_delete(
        self,
        collection: str,
        field: str,
        value: Any,
        operator: Operator | str = Operator.EQ,
        options: Optional[BulkDeleteOptions] = None,
    ) -> DeleteStats:
        """Single-condition delete with default options."""
        return self.execute_delete(
            collection, [Condition(field=field, operator=operator, value=value)], options
        )

    def undo_last_delete(self) -> bool:
        """Restore the last undo-enabled delete. False if there is nothing to undo."""
        with self._mutating(EngineState.RESTORING):
            if not self._undo.can_undo:
                self.error = "no delete to undo"
                return False
            self.error = None
            snap = self._undo.snapshot
            ok = self._undo.restore(
                batch_size=min(self.defaults.batch_size, self.store.max_batch_operations),
                policy=RetryPolicy(
                    max_attempts=self.defaults.max_retries,
                    base_delay=self.defaults.retry_delay,
                ),
                inter_batch_delay=self.defaults.inter_batch_delay,
            )
            if ok:
                log_event("undo.restored", snap.collection, {"records": snap.size})
            else:
                self.error = "undo restore failed; snapshot kept for another attempt"
            return ok
