# recordops/engine/previewer.py
from __future__ import annotations

import logging
from typing import List

from recordops.engine.query_builder import Query
from recordops.models.stats import MatchedRecord
from recordops.store.base import DocumentStore

logger = logging.getLogger("bulk.preview")


def preview(store: DocumentStore, query: Query) -> List[MatchedRecord]:
    """Run the query and snapshot the matches. Read-only; safe to repeat."""
    rows = store.query(query.collection, list(query.predicates))
    records = [MatchedRecord(id=r.id, fields=dict(r.fields)) for r in rows]
    logger.debug("preview %s matched %d", query.collection, len(records))
    return records
