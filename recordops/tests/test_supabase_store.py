# recordops/tests/test_supabase_store.py
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from postgrest.exceptions import APIError

from recordops.engine.query_builder import build_query
from recordops.exceptions import StoreError
from recordops.models.conditions import Condition
from recordops.store.base import DeleteOp, SetOp
from recordops.store.supabase_store import SupabaseDocumentStore, apply_predicate

_CHAIN = (
    "select", "eq", "neq", "lt", "lte", "gt", "gte", "in_", "contains",
    "overlaps", "filter", "is_", "order", "range", "delete", "upsert",
)


def _builder(pages=None):
    qb = MagicMock(name="builder")
    for m in _CHAIN:
        getattr(qb, m).return_value = qb
    qb.not_.is_.return_value = qb
    qb.execute.side_effect = [SimpleNamespace(data=p) for p in (pages or [[]])]
    client = MagicMock(name="client")
    client.table.return_value = qb
    return client, qb


def _pred(field, op, value):
    return build_query("t", [Condition(field, op, value)]).predicates[0]


class TestApplyPredicate(unittest.TestCase):
    def setUp(self):
        _, self.qb = _builder()

    def test_comparisons(self):
        apply_predicate(self.qb, _pred("age", ">=", "30"))
        self.qb.gte.assert_called_once_with("age", 30)
        apply_predicate(self.qb, _pred("status", "!=", "inactive"))
        self.qb.neq.assert_called_once_with("status", "inactive")

    def test_null_equality(self):
        apply_predicate(self.qb, _pred("deleted_at", "==", "null"))
        self.qb.is_.assert_called_once_with("deleted_at", "null")
        apply_predicate(self.qb, _pred("deleted_at", "!=", None))
        self.qb.not_.is_.assert_called_once_with("deleted_at", "null")

    def test_list_operators(self):
        apply_predicate(self.qb, _pred("company", "in", "AAA,BBB"))
        self.qb.in_.assert_called_once_with("company", ["AAA", "BBB"])
        apply_predicate(self.qb, _pred("company", "not-in", ["A,1", 2]))
        self.qb.filter.assert_called_once_with("company", "not.in", '("A,1",2)')
        apply_predicate(self.qb, _pred("tags", "array-contains-any", ["x"]))
        self.qb.overlaps.assert_called_once_with("tags", ["x"])
        apply_predicate(self.qb, _pred("tags", "array-contains", "x"))
        self.qb.contains.assert_called_once_with("tags", ["x"])


class TestSupabaseStore(unittest.TestCase):
    def test_query_pages_until_short_page(self):
        page1 = [{"id": 1, "company": "AAA"}, {"id": 2, "company": "AAA"}]
        page2 = [{"id": 3, "company": "AAA"}]
        client, qb = _builder([page1, page2])
        store = SupabaseDocumentStore(client, page_size=2)

        out = list(store.query("employees", [_pred("company", "==", "AAA")]))

        self.assertEqual([r.id for r in out], ["1", "2", "3"])
        self.assertEqual(out[0].fields, {"company": "AAA"})
        self.assertEqual(qb.range.call_args_list[0].args, (0, 1))
        self.assertEqual(qb.range.call_args_list[1].args, (2, 3))
        qb.order.assert_called_with("id")

    def test_delete_batch_is_one_request(self):
        client, qb = _builder([[]])
        store = SupabaseDocumentStore(client)
        store.commit_batch("employees", [DeleteOp("1"), DeleteOp("2")])
        qb.delete.assert_called_once_with()
        qb.in_.assert_called_once_with("id", ["1", "2"])
        self.assertEqual(qb.execute.call_count, 1)

    def test_set_batch_is_one_upsert(self):
        client, qb = _builder([[]])
        store = SupabaseDocumentStore(client, primary_key="uid")
        store.commit_batch("employees", [SetOp("7", {"name": "a"})])
        qb.upsert.assert_called_once_with([{"name": "a", "uid": "7"}], on_conflict="uid")

    def test_mixed_and_oversized_batches_rejected(self):
        client, _ = _builder()
        store = SupabaseDocumentStore(client, max_batch_operations=1)
        with self.assertRaises(StoreError):
            store.commit_batch("t", [DeleteOp("1"), DeleteOp("2")])
        store.max_batch_operations = 10
        with self.assertRaises(StoreError):
            store.commit_batch("t", [DeleteOp("1"), SetOp("2", {})])
        client.table.assert_not_called()

    def test_api_errors_become_store_errors(self):
        client, qb = _builder()
        qb.execute.side_effect = APIError(
            {"message": "permission denied", "code": "42501", "hint": None, "details": None}
        )
        store = SupabaseDocumentStore(client)
        with self.assertRaises(StoreError) as ctx:
            store.commit_batch("t", [DeleteOp("1")])
        self.assertIn("permission denied", str(ctx.exception))

    def test_known_pg_codes_get_friendly_prefix(self):
        client, qb = _builder()
        qb.execute.side_effect = APIError(
            {"message": "dup key", "code": "23505", "hint": None, "details": None}
        )
        store = SupabaseDocumentStore(client)
        with self.assertRaises(StoreError) as ctx:
            store.commit_batch("t", [SetOp("1", {})])
        self.assertEqual(str(ctx.exception), "unique violation: dup key")
        self.assertEqual(ctx.exception.code, "23505")


if __name__ == "__main__":
    unittest.main()
