# recordops/engine/query_builder.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from recordops.exceptions import ConditionValidationError
from recordops.models.conditions import Condition, Operator, Predicate


@dataclass(frozen=True)
class Query:
    collection: str
    predicates: Tuple[Predicate, ...]


def validate_conditions(conditions: Sequence[Condition]) -> Optional[str]:
    """Return an error message for the first bad condition, or None."""
    if not conditions:
        return "at least one condition is required"

    for i, c in enumerate(conditions, start=1):
        if c is None or not (c.field or "").strip():
            return f"condition {i}: field name is required"
        if c.is_value_blank() and not c.operator.is_list_style:
            return f"condition {i}: value is required"
    return None


def _validate_collection(collection: str, allowlist: Iterable[str] = ()) -> None:
    if not collection or not isinstance(collection, str) or not collection.strip():
        raise ConditionValidationError("collection (str) is required")
    allow = set(allowlist or ())
    if allow and collection.strip() not in allow:
        raise ConditionValidationError(
            f"collection '{collection}' is not allowed (BULK_DELETE_TABLE_ALLOWLIST)"
        )


def build_query(
    collection: str,
    conditions: Sequence[Condition],
    *,
    allowlist: Iterable[str] = (),
) -> Query:
    """
    Validate and translate conditions into a store query. Fails before any I/O.
    Values are coerced here, once; everything downstream sees typed values.
    """
    _validate_collection(collection, allowlist)
    err = validate_conditions(conditions)
    if err:
        raise ConditionValidationError(err)

    predicates: List[Predicate] = []
    for i, c in enumerate(conditions, start=1):
        try:
            typed = c.typed_value()
        except ValueError as e:
            raise ConditionValidationError(f"condition {i}: {e}") from e
        if typed.raw is None and c.operator not in (Operator.EQ, Operator.NEQ):
            raise ConditionValidationError(
                f"condition {i}: null is only comparable with == or !="
            )
        predicates.append(Predicate(field=c.field.strip(), operator=c.operator, value=typed))
    return Query(collection=collection.strip(), predicates=tuple(predicates))
