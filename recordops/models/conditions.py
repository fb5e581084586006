# recordops/models/conditions.py
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class Operator(str, Enum):
    EQ = "=="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    ARRAY_CONTAINS = "array-contains"
    IN = "in"
    NOT_IN = "not-in"
    ARRAY_CONTAINS_ANY = "array-contains-any"

    @property
    def is_list_style(self) -> bool:
        return self in _LIST_OPERATORS

    @classmethod
    def parse(cls, raw: Union[str, "Operator"]) -> "Operator":
        if isinstance(raw, Operator):
            return raw
        s = (raw or "").strip().lower()
        s = _OPERATOR_ALIASES.get(s, s)
        try:
            return cls(s)
        except ValueError:
            allowed = "|".join(o.value for o in cls)
            raise ValueError(f"unknown operator {raw!r}; expected one of {allowed}")


_LIST_OPERATORS = frozenset(
    {Operator.IN, Operator.NOT_IN, Operator.ARRAY_CONTAINS_ANY}
)

# accept the PostgREST-ish spellings used by db.read clients too
_OPERATOR_ALIASES = {
    "=": "==",
    "eq": "==",
    "ne": "!=",
    "neq": "!=",
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
    "not_in": "not-in",
    "contains": "array-contains",
    "array_contains": "array-contains",
    "array_contains_any": "array-contains-any",
}


# ------------------------------------------------------------------------------
# Typed values (resolved once, at the boundary)
# ------------------------------------------------------------------------------
@dataclass(frozen=True)
class StringValue:
    value: str

    @property
    def raw(self) -> Any:
        return self.value


@dataclass(frozen=True)
class NumberValue:
    value: Union[int, float]

    @property
    def raw(self) -> Any:
        return self.value


@dataclass(frozen=True)
class BoolValue:
    value: bool

    @property
    def raw(self) -> Any:
        return self.value


@dataclass(frozen=True)
class NullValue:
    @property
    def raw(self) -> Any:
        return None


ScalarValue = Union[StringValue, NumberValue, BoolValue, NullValue]


@dataclass(frozen=True)
class ListValue:
    items: tuple

    @property
    def raw(self) -> Any:
        return [i.raw for i in self.items]


TypedValue = Union[StringValue, NumberValue, BoolValue, NullValue, ListValue]

RawValue = Union[str, int, float, bool, None]

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def coerce_value(raw: Any) -> ScalarValue:
    """
    Purely syntactic coercion of an operator-supplied value:
      None / "null"            -> NullValue
      "true" / "false" (any case) -> BoolValue
      a string that is fully numeric -> NumberValue (int when integral)
      anything else            -> StringValue (unchanged)

    It cannot know the stored type of a field: a boolean field queried with
    "1" will simply not match.
    """
    if raw is None:
        return NullValue()
    if isinstance(raw, bool):
        return BoolValue(raw)
    if isinstance(raw, (int, float)):
        return NumberValue(raw)
    if not isinstance(raw, str):
        raise ValueError(f"unsupported condition value type: {type(raw).__name__}")

    low = raw.lower()
    if low == "null":
        return NullValue()
    if low == "true":
        return BoolValue(True)
    if low == "false":
        return BoolValue(False)

    s = raw.strip()
    if s and _NUMBER_RE.match(s):
        num = float(s)
        if "." not in s and "e" not in s.lower():
            return NumberValue(int(s))
        return NumberValue(num)
    return StringValue(raw)


def coerce_list(raw: Any) -> ListValue:
    """List-style operators take a list or a comma-separated string."""
    if raw is None or raw == "":
        return ListValue(())
    if isinstance(raw, (list, tuple)):
        items = list(raw)
    elif isinstance(raw, str):
        items = [p.strip() for p in raw.split(",") if p.strip()]
    else:
        items = [raw]
    return ListValue(tuple(coerce_value(i) for i in items))


@dataclass(frozen=True)
class Condition:
    field: str
    operator: Operator
    value: Any = None

    def __post_init__(self):
        # frozen: normalise via object.__setattr__
        object.__setattr__(self, "operator", Operator.parse(self.operator))

    @classmethod
    def from_dict(cls, d: dict) -> "Condition":
        op = d.get("operator", d.get("op", "=="))
        return cls(field=str(d.get("field") or ""), operator=op, value=d.get("value"))

    def to_dict(self) -> dict:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}

    def is_value_blank(self) -> bool:
        if self.value is None:
            return False
        if isinstance(self.value, str):
            return self.value == ""
        if isinstance(self.value, (list, tuple)):
            return len(self.value) == 0
        return False

    def typed_value(self) -> TypedValue:
        if self.operator.is_list_style:
            return coerce_list(self.value)
        return coerce_value(self.value)


@dataclass(frozen=True)
class Predicate:
    """A validated condition with its value resolved; what stores receive."""

    field: str
    operator: Operator
    value: TypedValue
