# recordops/store/factory.py
from __future__ import annotations

from typing import Optional

from recordops.config.app_config import Settings, get_settings
from recordops.store.base import DocumentStore


def build_store(settings: Optional[Settings] = None) -> DocumentStore:
    """Pick the store adapter named by STORE_BACKEND."""
    s = settings or get_settings()
    backend = (s.STORE_BACKEND or "memory").strip().lower()

    if backend == "memory":
        from recordops.store.memory import MemoryDocumentStore

        return MemoryDocumentStore(max_batch_operations=s.STORE_MAX_BATCH_OPS)

    if backend == "supabase":
        from recordops.store.supabase_store import SupabaseDocumentStore

        return SupabaseDocumentStore(
            primary_key=s.STORE_PRIMARY_KEY,
            page_size=s.STORE_PAGE_SIZE,
            max_batch_operations=s.STORE_MAX_BATCH_OPS,
        )

    raise ValueError(f"STORE_BACKEND must be one of memory|supabase, got {backend!r}")
