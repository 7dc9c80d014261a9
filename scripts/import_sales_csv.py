#!/usr/bin/env python
"""
Sales export import (command line)

Parses a territory sales export and prints what the app would load: customers
per territory and rep, plus every parse diagnostic.

Usage:
    # Dry run: parse and summarize
    python scripts/import_sales_csv.py "data/Denver South Territory File.csv"

    # Parse and save as the dataset snapshot the app restores at startup
    python scripts/import_sales_csv.py data/sales.csv --save

    # Dump the full parse result as JSON
    python scripts/import_sales_csv.py data/sales.csv --json

Environment:
    STORAGE_BACKEND / STORAGE_ROOT / S3_*: where --save writes the snapshot
    DATABASE_URL: audit trail for --save
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.tmgr.audit import record_event  # noqa: E402
from app.tmgr.config import load_config  # noqa: E402
from app.tmgr.constants import format_territory_name  # noqa: E402
from app.tmgr.modules.customer_data.snapshot import SnapshotStore  # noqa: E402
from app.tmgr.modules.customer_data.store import CustomerStore, DatasetLoadError  # noqa: E402
from app.tmgr.modules.territory.analytics import sales_representatives, territory_stats  # noqa: E402
from app.tmgr.storage import storage_from_config  # noqa: E402
from scripts._db_utils import database_url_from_env, script_session  # noqa: E402


def print_summary(store: CustomerStore) -> None:
    result = store.last_result
    assert result is not None
    print(f"Rows: {result.meta.total_rows}  Customers: {result.meta.valid_rows}")
    quarters = ", ".join(q["standardized"] for q in result.meta.quarter_columns) or "(none)"
    print(f"Quarter columns: {quarters}")

    print("\n=== TERRITORIES ===")
    for territory, stats in territory_stats(store.customers).items():
        print(
            f"  {format_territory_name(territory or '(none)'):<26} customers={stats.customer_count:<4} "
            f"sales=${stats.total_sales:,.2f}  top={stats.top_product}"
        )

    print("\n=== SALES REPS ===")
    for rep in sales_representatives(store.customers):
        print(f"  {rep.name or '(none)':<26} customers={len(rep.customers):<4} sales=${rep.total_sales:,.2f}")

    if result.errors:
        print(f"\n=== DIAGNOSTICS ({len(result.errors)}) ===")
        for e in result.errors:
            print(f"  row {e.row}: [{e.code}] {e.message}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Parse a territory sales export")
    parser.add_argument("path", help="CSV export to parse")
    parser.add_argument("--save", action="store_true", help="Persist the parsed dataset as the startup snapshot")
    parser.add_argument("--json", action="store_true", help="Print the full parse result as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    load_dotenv()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    path = Path(args.path)
    if not path.is_file():
        print(f"ERROR: {path} not found", file=sys.stderr)
        return 2

    config = load_config()
    snapshots = SnapshotStore(storage_from_config(config), prefix=config["SNAPSHOT_PREFIX"]) if args.save else None
    store = CustomerStore(snapshots)

    try:
        result = store.load(path.read_bytes())
    except DatasetLoadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_summary(store)

    if args.save:
        with script_session(database_url_from_env()) as s:
            record_event(
                s,
                action="customer_dataset.import",
                entity_type="CustomerDataset",
                metadata={"source": path.name, "customers": len(result.data), "warnings": len(result.errors), "via": "cli"},
            )
        print(f"\nSaved snapshot ({len(result.data)} customers, {store.last_updated}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
