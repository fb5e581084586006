# recordops/engine/factory.py
from __future__ import annotations

from typing import Optional

from recordops.config.app_config import Settings, get_settings
from recordops.engine.orchestrator import BulkDeleteEngine
from recordops.models.stats import BulkDeleteOptions
from recordops.store.base import DocumentStore
from recordops.store.factory import build_store


def build_engine(
    settings: Optional[Settings] = None, store: Optional[DocumentStore] = None
) -> BulkDeleteEngine:
    """Engine wired with the configured store and BULK_DELETE_* defaults."""
    s = settings or get_settings()
    return BulkDeleteEngine(
        store or build_store(s),
        defaults=BulkDeleteOptions(
            batch_size=s.BULK_DELETE_BATCH_SIZE,
            max_retries=s.BULK_DELETE_MAX_RETRIES,
            retry_delay=s.BULK_DELETE_RETRY_DELAY,
            inter_batch_delay=s.BULK_DELETE_INTER_BATCH_DELAY,
        ),
        table_allowlist=s.table_allowlist,
    )
