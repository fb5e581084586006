# recordops/export.py
from __future__ import annotations

import csv
import io
import json
from typing import Any, List, Sequence

from recordops.models.stats import MatchedRecord

BOM = "\ufeff"  # lets spreadsheet apps detect UTF-8


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def records_to_csv(records: Sequence[MatchedRecord], *, bom: bool = True) -> str:
    """Preview rows as CSV: id first, then the union of field names in first-seen order."""
    headers: List[str] = ["id"]
    seen = {"id"}
    for r in records:
        for k in r.fields:
            if k not in seen:
                seen.add(k)
                headers.append(k)

    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(headers)
    for r in records:
        row = r.to_dict()
        w.writerow([_cell(row.get(h)) for h in headers])
    return (BOM if bom else "") + buf.getvalue()
