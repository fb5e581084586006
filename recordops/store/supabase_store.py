# recordops/store/supabase_store.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from postgrest.exceptions import APIError

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

logger = logging.getLogger("store.supabase")

# Postgres SQLSTATE -> friendly prefix
_PG_ERRORS = {
    "23505": "unique violation",
    "23503": "foreign key violation",
    "23502": "not-null violation",
    "22P02": "invalid input",
    "42703": "invalid column",
    "42P01": "unknown table",
    "21000": "unsafe write",
    "23514": "check violation",
    "57014": "statement timeout",
}


def _error_payload(e: APIError) -> Dict[str, Any]:
    # postgrest-py exposes code/message; older shapes only carry args[0]
    if getattr(e, "code", None) or getattr(e, "message", None):
        return {"code": getattr(e, "code", None), "message": getattr(e, "message", None)}
    first = e.args[0] if getattr(e, "args", None) else None
    if isinstance(first, dict):
        return first
    if isinstance(first, str):
        try:
            parsed = json.loads(first)
            return parsed if isinstance(parsed, dict) else {"message": first}
        except ValueError:
            return {"message": first}
    return {"message": str(e)}


def _exec(q):
    try:
        return q.execute()
    except APIError as e:
        err = _error_payload(e)
        code = err.get("code")
        msg = err.get("message") or str(e)
        prefix = _PG_ERRORS.get(str(code)) if code else None
        raise StoreError(f"{prefix}: {msg}" if prefix else msg, code=code) from e


def _in_list(values: List[Any]) -> str:
    parts = []
    for v in values:
        if isinstance(v, str):
            parts.append('"' + v.replace('"', '\\"') + '"')
        elif isinstance(v, bool):
            parts.append(str(v).lower())
        elif v is None:
            parts.append("null")
        else:
            parts.append(str(v))
    return f"({','.join(parts)})"


def apply_predicate(qh, pred: Predicate):
    """Apply one predicate to a PostgREST filter builder."""
    field = pred.field
    op = pred.operator
    value = pred.value.raw

    # ---- NULL smart handling ----
    if value is None:
        if op is Operator.EQ:
            return qh.is_(field, "null")
        if op is Operator.NEQ:
            return qh.not_.is_(field, "null")
        raise ValueError(f"{field} {op.value} does not accept null")

    if op is Operator.EQ:
        return qh.eq(field, value)
    if op is Operator.NEQ:
        return qh.neq(field, value)
    if op is Operator.LT:
        return qh.lt(field, value)
    if op is Operator.LTE:
        return qh.lte(field, value)
    if op is Operator.GT:
        return qh.gt(field, value)
    if op is Operator.GTE:
        return qh.gte(field, value)
    if op is Operator.ARRAY_CONTAINS:
        return qh.contains(field, [value])
    if op is Operator.IN:
        return qh.in_(field, value)
    if op is Operator.NOT_IN:
        return qh.filter(field, "not.in", _in_list(value))
    if op is Operator.ARRAY_CONTAINS_ANY:
        return qh.overlaps(field, value)
    raise ValueError(f"unsupported operator: {op}")


class SupabaseDocumentStore(DocumentStore):
    """
    Collections are tables, records are rows keyed by `primary_key`.
    One commit_batch == one PostgREST request == one transaction.
    """

    def __init__(
        self,
        client=None,
        *,
        primary_key: str = "id",
        page_size: int = 1000,
        max_batch_operations: int = DEFAULT_MAX_BATCH_OPERATIONS,
    ):
        if client is None:
            from recordops.services.supabase_service import supabase

            client = supabase
        self._client = client
        self.primary_key = primary_key
        self.page_size = page_size
        self.max_batch_operations = max_batch_operations

    def query(
        self, collection: str, predicates: Sequence[Predicate]
    ) -> Iterable[StoredRecord]:
        out: List[StoredRecord] = []
        start = 0
        while True:
            qh = self._client.table(collection).select("*")
            for p in predicates:
                qh = apply_predicate(qh, p)
            # stable order so range() pages do not overlap
            qh = qh.order(self.primary_key).range(start, start + self.page_size - 1)
            resp = _exec(qh)
            rows = getattr(resp, "data", None) or []
            for row in rows:
                out.append(self._to_record(row))
            if len(rows) < self.page_size:
                break
            start += self.page_size
        logger.debug("query %s -> %d rows", collection, len(out))
        return out

    def commit_batch(self, collection: str, operations: List[BatchOperation]) -> None:
        if not operations:
            return
        if len(operations) > self.max_batch_operations:
            raise StoreError(
                f"batch has {len(operations)} operations; "
                f"max is {self.max_batch_operations}",
                code="batch-too-large",
            )
        deletes = [op for op in operations if isinstance(op, DeleteOp)]
        sets = [op for op in operations if isinstance(op, SetOp)]
        if deletes and sets:
            # a single PostgREST request is either a DELETE or an upsert
            raise StoreError("mixed delete/set batches are not supported")

        pk = self.primary_key
        if deletes:
            ids = [op.id for op in deletes]
            _exec(self._client.table(collection).delete().in_(pk, ids))
        else:
            rows = [{**op.fields, pk: op.id} for op in sets]
            _exec(self._client.table(collection).upsert(rows, on_conflict=pk))

    def _to_record(self, row: Dict[str, Any]) -> StoredRecord:
        rid: Optional[Any] = row.get(self.primary_key)
        if rid is None:
            raise StoreError(
                f"row without primary key '{self.primary_key}' in query result"
            )
        fields = {k: v for k, v in row.items() if k != self.primary_key}
        return StoredRecord(id=str(rid), fields=fields)
