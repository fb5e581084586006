# recordops/models/stats.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from recordops.models.conditions import Condition


@dataclass(frozen=True)
class MatchedRecord:
    """Record reference plus its field values as they were at match time."""

    id: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        # the record reference wins over a stored field named "id"
        return {**self.fields, "id": self.id}


@dataclass(frozen=True)
class DeleteStats:
    found: int = 0
    deleted: int = 0
    failed: int = 0
    errors: Tuple[str, ...] = ()
    duration: float = 0.0  # seconds
    batches_processed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["errors"] = list(self.errors)
        return out


@dataclass
class StatsAccumulator:
    """Mutable counters used while an operation runs; frozen into DeleteStats."""

    found: int = 0
    deleted: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    batches_processed: int = 0

    def freeze(self, duration: float) -> DeleteStats:
        return DeleteStats(
            found=self.found,
            deleted=self.deleted,
            failed=self.failed,
            errors=tuple(self.errors),
            duration=duration,
            batches_processed=self.batches_processed,
        )


@dataclass(frozen=True)
class ProgressInfo:
    current: int
    total: int
    percentage: int
    current_batch: int
    total_batches: int
    estimated_time_remaining: float  # seconds


@dataclass(frozen=True)
class BatchInfo:
    batch_number: int
    total_batches: int
    items_in_batch: int
    success_count: int
    failure_count: int
    errors: Tuple[str, ...] = ()


@dataclass
class BulkDeleteOptions:
    batch_size: int = 500
    dry_run: bool = False
    enable_undo: bool = False
    max_retries: int = 3
    retry_delay: float = 1.0  # base for exponential backoff, seconds
    inter_batch_delay: float = 0.1
    on_progress: Optional[Callable[[ProgressInfo], None]] = None
    on_batch_complete: Optional[Callable[[BatchInfo], None]] = None
    # optional event channel; closed by the engine when the operation ends
    progress_stream: Optional[Any] = None


@dataclass(frozen=True)
class UndoSnapshot:
    collection: str
    conditions: Tuple[Condition, ...]
    captured_at: datetime
    records: Tuple[MatchedRecord, ...]

    @property
    def size(self) -> int:
        return len(self.records)
