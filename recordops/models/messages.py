# recordops/models/messages.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from recordops.models.conditions import Condition
from recordops.models.stats import BulkDeleteOptions, DeleteStats, MatchedRecord

ConditionScalar = Union[bool, int, float, str, None]


class ConditionIn(BaseModel):
    field: str = ""
    operator: str = "=="
    value: Union[ConditionScalar, List[ConditionScalar]] = None

    def to_condition(self) -> Condition:
        return Condition(field=self.field, operator=self.operator, value=self.value)


class ConditionsRequest(BaseModel):
    collection: str
    conditions: List[ConditionIn] = Field(default_factory=list)

    def to_conditions(self) -> List[Condition]:
        return [c.to_condition() for c in self.conditions]


class OptionsIn(BaseModel):
    batch_size: Optional[int] = None
    dry_run: bool = False
    enable_undo: bool = False
    max_retries: Optional[int] = None
    retry_delay: Optional[float] = None

    def to_options(self, defaults: BulkDeleteOptions) -> BulkDeleteOptions:
        return BulkDeleteOptions(
            batch_size=self.batch_size if self.batch_size is not None else defaults.batch_size,
            dry_run=self.dry_run,
            enable_undo=self.enable_undo,
            max_retries=self.max_retries if self.max_retries is not None else defaults.max_retries,
            retry_delay=self.retry_delay if self.retry_delay is not None else defaults.retry_delay,
            inter_batch_delay=defaults.inter_batch_delay,
        )


class ExecuteRequest(ConditionsRequest):
    options: OptionsIn = Field(default_factory=OptionsIn)


class QuickDeleteRequest(BaseModel):
    collection: str
    field: str
    value: ConditionScalar = None
    operator: str = "=="


class ValidateResponse(BaseModel):
    ok: bool
    error: Optional[str] = None


class PreviewResponse(BaseModel):
    collection: str
    count: int
    records: List[Dict[str, Any]] = Field(default_factory=list)
    estimated_seconds: float = 0.0

    @classmethod
    def build(cls, collection: str, records: List[MatchedRecord], eta: float) -> "PreviewResponse":
        return cls(
            collection=collection,
            count=len(records),
            records=[r.to_dict() for r in records],
            estimated_seconds=eta,
        )


class StatsResponse(BaseModel):
    found: int
    deleted: int
    failed: int
    errors: List[str] = Field(default_factory=list)
    duration: float
    batches_processed: int
    can_undo: bool = False

    @classmethod
    def build(cls, stats: DeleteStats, can_undo: bool = False) -> "StatsResponse":
        return cls(**stats.to_dict(), can_undo=can_undo)


class UndoResponse(BaseModel):
    ok: bool
    error: Optional[str] = None


class EstimateResponse(BaseModel):
    item_count: int
    batch_size: int
    estimated_seconds: float
    cost: Dict[str, Any] = Field(default_factory=dict)


class StateResponse(BaseModel):
    state: str
    is_deleting: bool
    is_loading: bool
    can_undo: bool
    error: Optional[str] = None
    last_stats: Optional[StatsResponse] = None
    undo_collection: Optional[str] = None
    undo_records: int = 0
