#!/usr/bin/env python3
"""
Runs one backfill batch against the local SQLite book store.

Usage:
    python run_backfill.py --batch-size 50
    python run_backfill.py --refresh-covers --db books.db
"""

import argparse
import json
import logging
import time

from bookmeta import BatchEnrichmentJob, MetadataResolver, Settings, SQLiteBookStore
from bookmeta.config import DEFAULT_BATCH_SIZE, MAX_BATCH_SIZE


def parse_args():
    parser = argparse.ArgumentParser(description="Enrich stored books with metadata and covers")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE,
                        help=f"Unique books per batch (max {MAX_BATCH_SIZE})")
    parser.add_argument("--refresh-covers", action="store_true",
                        help="Also revisit books whose cover is missing or a placeholder")
    parser.add_argument("--db", default=None, help="SQLite path (default: BOOKMETA_DB_PATH)")
    return parser.parse_args()


def main():
    args = parse_args()
    settings = Settings.from_env()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    store = SQLiteBookStore(args.db or settings.db_path)
    job = BatchEnrichmentJob(store, MetadataResolver.from_settings(settings))

    print("🚀 STARTING BACKFILL")
    print(f"Batch size: {args.batch_size}, refresh covers: {args.refresh_covers}")
    print("=" * 60)

    start_time = time.time()
    try:
        result = job.run(batch_size=args.batch_size, refresh_covers=args.refresh_covers)
    finally:
        store.close()
    elapsed = time.time() - start_time

    print("=" * 60)
    print(f"✅ BACKFILL BATCH COMPLETE in {elapsed:.1f}s")
    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    main()
