# recordops/tests/conftest.py
from __future__ import annotations

from typing import Callable, List

import pytest

from recordops.engine.orchestrator import BulkDeleteEngine
from recordops.exceptions import StoreError
from recordops.models.stats import BulkDeleteOptions
from recordops.store.base import BatchOperation
from recordops.store.memory import MemoryDocumentStore


class FlakyStore(MemoryDocumentStore):
    """Memory store whose commits fail while `should_fail(ops)` is true."""

    def __init__(self, *args, should_fail: Callable[[List[BatchOperation]], bool], **kw):
        super().__init__(*args, **kw)
        self.should_fail = should_fail
        self.attempts = 0

    def commit_batch(self, collection, operations):
        self.attempts += 1
        if self.should_fail(operations):
            raise StoreError("deadline exceeded")
        return super().commit_batch(collection, operations)


def seed_employees(store: MemoryDocumentStore, n: int, company: str = "AAA", start: int = 0):
    for i in range(start, start + n):
        store.insert(
            "employees",
            f"e{i:05d}",
            {"name": f"emp {i}", "company": company, "status": "active", "age": 20 + i % 40},
        )


def fast_options(**kw) -> BulkDeleteOptions:
    kw.setdefault("retry_delay", 0)
    kw.setdefault("inter_batch_delay", 0)
    return BulkDeleteOptions(**kw)


@pytest.fixture
def store() -> MemoryDocumentStore:
    s = MemoryDocumentStore()
    seed_employees(s, 10, company="AAA")
    seed_employees(s, 5, company="BBB", start=10)
    s.insert("employees", "x1", {"name": "gone", "company": "CCC", "status": "inactive"})
    s.insert("employees", "x2", {"name": "gone2", "company": "CCC", "status": "inactive"})
    return s


@pytest.fixture
def engine(store) -> BulkDeleteEngine:
    return BulkDeleteEngine(store, defaults=fast_options())


@pytest.fixture
def flaky_store_factory():
    def make(should_fail, **kw) -> FlakyStore:
        return FlakyStore(should_fail=should_fail, **kw)

    return make
