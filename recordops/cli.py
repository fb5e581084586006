#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from recordops.config.app_config import get_settings
from recordops.engine.factory import build_engine
from recordops.exceptions import BulkDeleteError
from recordops.export import records_to_csv
from recordops.logging_utils import setup_logging
from recordops.models.conditions import Condition
from recordops.models.stats import BatchInfo, BulkDeleteOptions, ProgressInfo
from recordops.store.factory import build_store
from recordops.store.memory import MemoryDocumentStore


def _build_parser() -> argparse.ArgumentParser:
    s = get_settings()
    ap = argparse.ArgumentParser(
        prog="recordops-bulk-delete",
        description="Preview or delete every record in a collection matching all conditions.",
    )
    ap.add_argument("--collection", required=True)
    ap.add_argument(
        "--where",
        nargs=3,
        action="append",
        metavar=("FIELD", "OP", "VALUE"),
        default=[],
        help="condition, repeatable (ANDed). OP: == != < <= > >= in not-in "
        "array-contains array-contains-any",
    )
    ap.add_argument("--preview", action="store_true", help="list matches and exit")
    ap.add_argument("--csv", help="write the preview as CSV to this path")
    ap.add_argument("--dry-run", action="store_true")
    ap.add_argument("--batch-size", type=int, default=s.BULK_DELETE_BATCH_SIZE)
    ap.add_argument("--max-retries", type=int, default=s.BULK_DELETE_MAX_RETRIES)
    ap.add_argument("--retry-delay", type=float, default=s.BULK_DELETE_RETRY_DELAY)
    ap.add_argument("--seed", help="JSON {collection: {id: fields}} for the memory store")
    ap.add_argument("--yes", action="store_true", help="do not ask for confirmation")
    return ap


def _print_progress(p: ProgressInfo) -> None:
    print(
        f"  batch {p.current_batch}/{p.total_batches}: {p.current}/{p.total} "
        f"({p.percentage}%) eta {p.estimated_time_remaining:.1f}s",
        flush=True,
    )


def _print_batch(b: BatchInfo) -> None:
    for err in b.errors:
        print(f"  ! {err}", file=sys.stderr, flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging()
    settings = get_settings()

    store = build_store(settings)
    if args.seed:
        if not isinstance(store, MemoryDocumentStore):
            print("ERROR: --seed only works with STORE_BACKEND=memory", file=sys.stderr)
            return 2
        data = json.loads(Path(args.seed).read_text(encoding="utf-8"))
        for coll, docs in data.items():
            for rid, fields in docs.items():
                store.insert(coll, str(rid), fields)

    engine = build_engine(settings, store=store)
    try:
        conditions = [Condition(f, op, v) for f, op, v in args.where]
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    try:
        records = engine.preview_delete(args.collection, conditions)
        print(f"{len(records)} record(s) in '{args.collection}' match")
        if args.csv:
            Path(args.csv).write_text(records_to_csv(records), encoding="utf-8")
            print(f"Wrote {Path(args.csv).resolve()}")
        if args.preview:
            for r in records[:20]:
                print(f"  {r.id}: {json.dumps(r.fields, ensure_ascii=False, default=str)}")
            if len(records) > 20:
                print(f"  ... {len(records) - 20} more")
            return 0
        if not records:
            return 0

        if not args.dry_run and not args.yes:
            eta = engine.estimate_delete_time(len(records), args.batch_size)
            answer = input(
                f"Delete {len(records)} record(s) (~{eta:.0f}s)? Type 'yes' to continue: "
            )
            if answer.strip().lower() != "yes":
                print("aborted")
                return 1

        stats = engine.execute_delete(
            args.collection,
            conditions,
            BulkDeleteOptions(
                batch_size=args.batch_size,
                dry_run=args.dry_run,
                max_retries=args.max_retries,
                retry_delay=args.retry_delay,
                inter_batch_delay=settings.BULK_DELETE_INTER_BATCH_DELAY,
                on_progress=_print_progress,
                on_batch_complete=_print_batch,
            ),
        )
    except BulkDeleteError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    print(json.dumps(stats.to_dict(), indent=2))
    return 1 if stats.failed else 0


if __name__ == "__main__":
    sys.exit(main())
