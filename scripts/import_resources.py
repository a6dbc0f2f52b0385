#!/usr/bin/env python3
"""
Import an Azure Resource Graph CSV export into the catalog.

Subscriptions, resource groups and applications (from the AppID tag) are
created on first sight. Rows missing a required column or carrying
unparseable Tags JSON are skipped and counted.

Example:
  python scripts/import_resources.py --csv datasets/AzureResourceGraphFormattedResults-Query.csv \\
    --create-tables
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from techstock.modules.inventory.domain.importer import CsvResourceImporter
from techstock.shared.core.config import get_settings
from techstock.shared.core.logging import setup_logging
from techstock.shared.db.session import (
    async_session_maker,
    create_all_tables,
    dispose_db_runtime,
)

logger = structlog.get_logger()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import an Azure Resource Graph CSV export."
    )
    parser.add_argument(
        "--csv",
        dest="csv_path",
        default=get_settings().IMPORT_CSV_PATH,
        help="Path to the CSV export.",
    )
    parser.add_argument(
        "--create-tables",
        dest="create_tables",
        action="store_true",
        help="Create missing catalog tables before importing.",
    )
    parser.add_argument(
        "--progress-every",
        dest="progress_every",
        type=int,
        default=None,
        help="Commit and log progress every N rows.",
    )
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    try:
        if args.create_tables:
            await create_all_tables()
        async with async_session_maker() as session:
            importer = CsvResourceImporter(session, progress_every=args.progress_every)
            report = await importer.import_file(Path(args.csv_path))
    except FileNotFoundError as exc:
        logger.error("resource_import_failed", error=str(exc))
        return 2
    finally:
        await dispose_db_runtime()

    print(
        json.dumps(
            {
                "processed": report.processed,
                "imported": report.imported,
                "skipped": report.skipped,
            },
            indent=2,
        )
    )
    return 0


def main() -> None:
    setup_logging()
    sys.exit(asyncio.run(_run(_parse_args())))


if __name__ == "__main__":
    main()
