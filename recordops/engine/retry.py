# recordops/engine/retry.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Attempts and exponential backoff for one unit of store work."""

    max_attempts: int = 3
    # seconds; wait before attempt n+1 is base_delay * 2**(n-1)
    base_delay: float = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")

    def delay_for(self, attempt: int) -> float:
        """Backoff after failed attempt number `attempt` (1-based)."""
        return self.base_delay * (2 ** (attempt - 1))


@dataclass
class RetryResult(Generic[T]):
    ok: bool
    value: Optional[T] = None
    attempts: int = 0
    errors: List[BaseException] = field(default_factory=list)

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.errors[-1] if self.errors else None


def with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy,
    *,
    on_attempt_failed: Optional[Callable[[int, BaseException], Any]] = None,
) -> RetryResult[T]:
    """
    Call fn until it returns or policy.max_attempts is reached.
    Never raises for fn's errors; they are collected on the result.
    No sleep after the final attempt.
    """
    result: RetryResult[T] = RetryResult(ok=False)
    for attempt in range(1, policy.max_attempts + 1):
        result.attempts = attempt
        try:
            result.value = fn()
            result.ok = True
            return result
        except Exception as e:  # noqa: BLE001 - store adapters raise anything
            result.errors.append(e)
            if on_attempt_failed is not None:
                on_attempt_failed(attempt, e)
            if attempt < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    "[retry] attempt=%d/%d error=%s backoff=%.2fs",
                    attempt,
                    policy.max_attempts,
                    e,
                    delay,
                )
                if delay > 0:
                    time.sleep(delay)
    return result
