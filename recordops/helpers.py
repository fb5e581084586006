# recordops/helpers.py
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from recordops.models.conditions import Condition, Operator

# Rough cost model for the confirmation dialog (seconds per batch, currency per item)
_SECONDS_PER_BATCH = 0.3
_COST_PER_ITEM = 0.02


def inactive_condition(status_field: str = "status") -> Condition:
    return Condition(status_field, Operator.EQ, "inactive")


def test_data_condition(type_field: str = "type") -> Condition:
    return Condition(type_field, Operator.EQ, "test")


def company_condition(company: str, company_field: str = "company") -> Condition:
    return Condition(company_field, Operator.EQ, company)


def disabled_condition(active_field: str = "isActive") -> Condition:
    return Condition(active_field, Operator.EQ, False)


def created_by_condition(email: str, created_by_field: str = "createdBy") -> Condition:
    return Condition(created_by_field, Operator.EQ, email)


def date_range_conditions(
    date_field: str, start: datetime, end: Optional[datetime] = None
) -> List[Condition]:
    """ISO-8601 bounds; dates are stored as strings so they compare lexically."""
    out = [Condition(date_field, Operator.GTE, start.isoformat())]
    if end is not None:
        out.append(Condition(date_field, Operator.LTE, end.isoformat()))
    return out


def combine_conditions(*conditions: Condition) -> List[Condition]:
    """Drop conditions with a blank field or a blank value."""
    return [
        c
        for c in conditions
        if (c.field or "").strip() and not (isinstance(c.value, str) and c.value == "")
    ]


def estimate_operation_cost(item_count: int, batch_size: int = 500) -> Dict[str, Any]:
    batches = math.ceil(item_count / batch_size) if item_count > 0 else 0
    return {
        "batches": batches,
        "estimated_seconds": math.ceil(batches * _SECONDS_PER_BATCH),
        "reads": item_count,  # the match query
        "writes": item_count,  # one delete per record
        "estimated_cost": round(item_count * _COST_PER_ITEM, 2),
    }
