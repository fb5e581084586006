# recordops/engine/planner.py
from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def count_batches(item_count: int, batch_size: int) -> int:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return math.ceil(item_count / batch_size) if item_count > 0 else 0


def plan_batches(records: Sequence[T], batch_size: int) -> List[List[T]]:
    """
    Split records into contiguous chunks of at most batch_size, in order.
    batch_size is not clamped to the store cap: an oversized batch is the
    caller's misconfiguration and surfaces when the first commit fails.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(records[i : i + batch_size]) for i in range(0, len(records), batch_size)]
