#!/usr/bin/env python3
"""
Sync an inventory spreadsheet to Shopify from the command line.

Runs the same pipeline as POST /api/inventory/upload and prints the
{updated, failed, skipped} summary as JSON.

Usage:
    python scripts/sync_inventory_file.py stock.xlsx
    python scripts/sync_inventory_file.py stock.csv --batch-size 5
    python scripts/sync_inventory_file.py stock.xlsx --default-location "Main Warehouse"
    python scripts/sync_inventory_file.py stock.xlsx --output summary.json
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import get_settings
from exceptions import AppError
from services.inventory_sync_service import InventorySyncService, SyncOptions


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Sync inventory quantities from a spreadsheet to Shopify",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "file",
        type=Path,
        help="Spreadsheet to sync (.xlsx, .xls or .csv; first sheet only)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.sync_batch_size,
        help=f"Rows processed concurrently (default: {settings.sync_batch_size})",
    )
    parser.add_argument(
        "--batch-delay-ms",
        type=int,
        default=settings.sync_batch_delay_ms,
        help=f"Pause between batches (default: {settings.sync_batch_delay_ms})",
    )
    parser.add_argument(
        "--default-location",
        default=settings.default_location_name,
        help="Fallback location name for rows without one",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Write the summary JSON here instead of stdout",
    )
    return parser


def print_progress(processed: int, total: int) -> None:
    print(f"Progress: {processed}/{total} rows processed", file=sys.stderr)


def main() -> int:
    args = build_parser().parse_args()

    if not args.file.is_file():
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        return 2

    options = SyncOptions(
        batch_size=args.batch_size,
        batch_delay_ms=args.batch_delay_ms,
        default_location_name=args.default_location,
    )
    service = InventorySyncService(options=options)

    try:
        summary = asyncio.run(service.sync_file(
            args.file.read_bytes(),
            args.file.name,
            progress=print_progress,
        ))
    except AppError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    output = json.dumps(summary.to_dict(), indent=2)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
    else:
        print(output)

    print(
        f"Updated: {len(summary.updated)}, "
        f"Failed: {len(summary.failed)}, "
        f"Skipped: {len(summary.skipped)}",
        file=sys.stderr,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
