# recordops/store/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence, Union

from recordops.models.conditions import Predicate

# Firestore's per-commit cap; also the default for the other adapters.
DEFAULT_MAX_BATCH_OPERATIONS = 500


@dataclass(frozen=True)
class StoredRecord:
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteOp:
    id: str


@dataclass(frozen=True)
class SetOp:
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)


BatchOperation = Union[DeleteOp, SetOp]


class DocumentStore(ABC):
    """
    The three primitives the engine needs from a document store:
      - query(collection, predicates) -> iterable of records (AND of predicates)
      - commit_batch(collection, operations) -> None, atomic; raises on failure
      - max_batch_operations: hard cap on operations per commit
    No schema introspection.
    """

    max_batch_operations: int = DEFAULT_MAX_BATCH_OPERATIONS

    @abstractmethod
    def query(
        self, collection: str, predicates: Sequence[Predicate]
    ) -> Iterable[StoredRecord]:
        raise NotImplementedError

    @abstractmethod
    def commit_batch(self, collection: str, operations: List[BatchOperation]) -> None:
        raise NotImplementedError
