# recordops/exceptions.py
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from recordops.models.stats import DeleteStats


class BulkDeleteError(Exception):
    """Base class for errors raised by the bulk delete engine."""


class ConditionValidationError(BulkDeleteError, ValueError):
    """Malformed conditions or options. Raised before any store I/O."""


class EngineBusyError(BulkDeleteError, RuntimeError):
    """Another delete/restore is already in flight on this engine."""


class QueryFailedError(BulkDeleteError):
    """
    The match phase failed (store unreachable, bad query...).
    Nothing was mutated; `stats` has found=0 and the message in errors.
    """

    def __init__(self, message: str, stats: Optional["DeleteStats"] = None):
        super().__init__(message)
        self.stats = stats


class StoreError(Exception):
    """Raised by DocumentStore adapters when a read or a batch commit fails."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code
