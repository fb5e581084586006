# recordops/store/memory.py
from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence

from recordops.exceptions import StoreError
from recordops.models.conditions import Operator, Predicate
from recordops.store.base import (
    DEFAULT_MAX_BATCH_OPERATIONS,
    BatchOperation,
    DeleteOp,
    DocumentStore,
    SetOp,
    StoredRecord,
)

_MISSING = object()


def _compare(op: Operator, have: Any, want: Any) -> bool:
    # ordering across incompatible types never matches (no cross-type ordering)
    try:
        if op is Operator.LT:
            return have < want
        if op is Operator.LTE:
            return have <= want
        if op is Operator.GT:
            return have > want
        if op is Operator.GTE:
            return have >= want
    except TypeError:
        return False
    raise ValueError(f"not an ordering operator: {op}")


def _same(a: Any, b: Any) -> bool:
    # True == 1 in Python; a stored bool must not match a number and vice versa
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a is b
    return a == b


def matches(fields: Dict[str, Any], pred: Predicate) -> bool:
    have = fields.get(pred.field, _MISSING)
    want = pred.value.raw
    op = pred.operator

    if op is Operator.EQ:
        return have is not _MISSING and _same(have, want)
    if op is Operator.NEQ:
        return have is not _MISSING and not _same(have, want)
    if op in (Operator.LT, Operator.LTE, Operator.GT, Operator.GTE):
        if have is _MISSING or have is None or want is None:
            return False
        return _compare(op, have, want)
    if op is Operator.ARRAY_CONTAINS:
        return isinstance(have, list) and any(_same(x, want) for x in have)
    if op is Operator.IN:
        return have is not _MISSING and any(_same(have, w) for w in want)
    if op is Operator.NOT_IN:
        return have is not _MISSING and not any(_same(have, w) for w in want)
    if op is Operator.ARRAY_CONTAINS_ANY:
        return isinstance(have, list) and any(
            _same(x, w) for x in have for w in want
        )
    raise ValueError(f"unsupported operator: {op}")


class MemoryDocumentStore(DocumentStore):
    """
    In-process store. Evaluates predicates in Python, enforces the per-commit
    operation cap and applies each batch all-or-nothing.
    """

    def __init__(
        self,
        data: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None,
        max_batch_operations: int = DEFAULT_MAX_BATCH_OPERATIONS,
    ):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = copy.deepcopy(data or {})
        self.max_batch_operations = max_batch_operations
        self._lock = threading.Lock()
        self.commits = 0

    # ---- convenience for seeding / inspection ----
    def insert(self, collection: str, record_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            self._data.setdefault(collection, {})[record_id] = copy.deepcopy(fields)

    def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._data.get(collection, {}).get(record_id)
            return copy.deepcopy(doc) if doc is not None else None

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._data.get(collection, {}))

    def collections(self) -> List[str]:
        with self._lock:
            return sorted(self._data)

    # ---- DocumentStore ----
    def query(
        self, collection: str, predicates: Sequence[Predicate]
    ) -> Iterable[StoredRecord]:
        with self._lock:
            docs = list(self._data.get(collection, {}).items())
        out = []
        for rid, fields in docs:
            if all(matches(fields, p) for p in predicates):
                out.append(StoredRecord(id=rid, fields=copy.deepcopy(fields)))
        return out

    def commit_batch(self, collection: str, operations: List[BatchOperation]) -> None:
        if len(operations) > self.max_batch_operations:
            raise StoreError(
                f"batch has {len(operations)} operations; "
                f"max is {self.max_batch_operations}",
                code="batch-too-large",
            )
        with self._lock:
            # stage on a copy so a bad op leaves the collection untouched
            staged = dict(self._data.get(collection, {}))
            for op in operations:
                if isinstance(op, DeleteOp):
                    staged.pop(op.id, None)
                elif isinstance(op, SetOp):
                    staged[op.id] = copy.deepcopy(op.fields)
                else:
                    raise StoreError(f"unsupported batch operation: {op!r}")
            self._data[collection] = staged
            self.commits += 1
