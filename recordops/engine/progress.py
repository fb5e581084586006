# recordops/engine/progress.py
from __future__ import annotations

import math
import queue
import time
from typing import Callable, Iterator, Optional

from recordops.models.stats import ProgressInfo

# Advisory cost model (seconds); never used for scheduling.
PER_BATCH_COST = 0.1
PER_ITEM_COST = 0.05
PER_BATCH_NETWORK = 0.2


def estimate_delete_time(item_count: int, batch_size: int = 500) -> float:
    """Static pre-run estimate: per-batch overhead + per-item cost + network per batch."""
    if item_count <= 0:
        return 0.0
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    batches = math.ceil(item_count / batch_size)
    return batches * PER_BATCH_COST + item_count * PER_ITEM_COST + batches * PER_BATCH_NETWORK


class ProgressTracker:
    """Running counts, percentage and ETA for one operation."""

    def __init__(
        self,
        total: int,
        batch_size: int,
        total_batches: int,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.total = total
        self.total_batches = total_batches
        self._clock = clock
        self.started_at = clock()
        self.fallback_eta = estimate_delete_time(total, batch_size)

    def elapsed(self) -> float:
        return self._clock() - self.started_at

    def snapshot(self, done: int, current_batch: int) -> ProgressInfo:
        pct = (done / self.total * 100.0) if self.total else 0.0
        if pct > 0:
            eta = self.elapsed() / pct * (100.0 - pct)
        else:
            eta = self.fallback_eta
        return ProgressInfo(
            current=done,
            total=self.total,
            percentage=int(round(pct)),
            current_batch=current_batch,
            total_batches=self.total_batches,
            estimated_time_remaining=round(eta, 3),
        )


_CLOSED = object()


class ProgressStream:
    """
    Ordered channel of ProgressInfo events for one operation.
    The engine publishes at most one event per batch and closes the stream when
    the operation ends; iterating blocks until the next event or close.
    """

    def __init__(self, maxsize: int = 0):
        self._q: "queue.Queue[object]" = queue.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, info: ProgressInfo) -> None:
        if self._closed:
            raise RuntimeError("progress stream is closed")
        self._q.put(info)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._q.put(_CLOSED)

    def get(self, timeout: Optional[float] = None) -> Optional[ProgressInfo]:
        """Next event, or None once closed. Raises queue.Empty on timeout."""
        item = self._q.get(timeout=timeout)
        if item is _CLOSED:
            # keep the sentinel for other readers / repeated calls
            self._q.put(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[ProgressInfo]:
        while True:
            item = self.get()
            if item is None:
                return
            yield item
