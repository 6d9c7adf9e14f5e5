#!/usr/bin/env python3
"""
Bulk data maintenance for property listings.

    import_units.py units export.tsv [--dry-run] [--score-cutoff 85]
    import_units.py zones [--mapping zones.json] [--dry-run]
"""

import asyncio
import sys
import argparse
import logging

from homesapp.config import settings
from homesapp.database import AsyncSessionLocal, close_db_connection
from homesapp.services.importer import UnitImporter, ZoneUpdater, load_zone_mapping

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def import_units(path: str, dry_run: bool, score_cutoff: int) -> int:
    with open(path, encoding="utf-8") as fh:
        content = fh.read()

    try:
        async with AsyncSessionLocal() as session:
            summary = await UnitImporter(session, score_cutoff=score_cutoff).run(content, dry_run=dry_run)
    finally:
        await close_db_connection()

    print(f"Processed: {summary.processed}")
    print(f"{'Would update' if dry_run else 'Updated'}: {summary.updated}")
    print(f"Unchanged: {summary.unchanged}")
    print(f"Not found: {summary.not_found}")
    print(f"Errors: {summary.errors}")
    for missing in summary.missing:
        print(f"  not found: {missing}")
    return 1 if summary.errors else 0


async def update_zones(mapping_path: str, dry_run: bool) -> int:
    mapping = load_zone_mapping(mapping_path) if mapping_path else None

    try:
        async with AsyncSessionLocal() as session:
            summary = await ZoneUpdater(session).run(mapping=mapping, dry_run=dry_run)
    finally:
        await close_db_connection()

    print(f"{'Would update' if dry_run else 'Updated'}: {summary.updated}")
    print(f"Already correct: {summary.already_correct}")
    if summary.unmapped:
        print(f"Condominiums without a zone ({len(summary.unmapped)}):")
        for name in summary.unmapped:
            print(f"  {name}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Property data maintenance")
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing them")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    units_parser = subparsers.add_parser("units", help="Apply a tab separated unit details export")
    units_parser.add_argument("file", help="Path to the export")
    units_parser.add_argument(
        "--score-cutoff",
        type=int,
        default=settings.import_match_score_cutoff,
        help="Minimum fuzzy score for condominium names (0-100)"
    )

    zones_parser = subparsers.add_parser("zones", help="Set zones from condominium names")
    zones_parser.add_argument("--mapping", help="JSON file of condominium name -> zone")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    try:
        if args.command == "units":
            code = asyncio.run(import_units(args.file, args.dry_run, args.score_cutoff))
        else:
            code = asyncio.run(update_zones(args.mapping, args.dry_run))
    except (OSError, ValueError) as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
