#!/usr/bin/env python3
"""Import leave requests from a calendar export - command line entry point

Parses the export, matches names against the roster and prints the import
preview. With --commit, items that matched a single member and are not
already stored are inserted; everything else is left for the staged review."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from pocketbase import PocketBase

from ..config import ConfigLoader
from ..logging_config import configure_logging, resolve_level
from ..settings import get_settings
from .commit import BatchCommitEngine, prepare_import_data
from .conflict import DuplicateDetector
from .core.models import ImportPreviewItem, MatchStatus
from .data.connection_manager import ConnectionManager
from .data.pocketbase_wrapper import PocketBaseWrapper
from .data.repositories import MemberRepository, RequestRepository
from .matching import MatchThresholds, MemberMatcher, RosterSearch
from .parsing import parse_ical_for_requests
from .preview import ImportPreviewBuilder

logger = logging.getLogger(__name__)


def auto_import_indices(items: list[ImportPreviewItem]) -> list[int]:
    """Items safe to import without review: single match, not already stored"""
    return [
        index
        for index, item in enumerate(items)
        if item.match.status == MatchStatus.MATCHED and not item.is_potential_duplicate
    ]


def run_import(
    content: str,
    calendar_id: str,
    year: int,
    pb: PocketBase | PocketBaseWrapper,
    division_id: str | None = None,
    commit: bool = False,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Build the import preview and optionally commit the unambiguous items.

    Returns:
        Statistics for the run
    """
    settings = get_settings()
    division = division_id or settings.default_division_id

    request_repo = RequestRepository(pb, page_size=ConfigLoader.get_instance().get_int("commit.page_size", 200))
    matcher = MemberMatcher(RosterSearch(MemberRepository(pb), MatchThresholds.from_config()))
    builder = ImportPreviewBuilder(matcher, DuplicateDetector(request_repo))

    candidates = parse_ical_for_requests(content, year)
    items = builder.generate_import_preview(candidates, calendar_id, division)

    by_status = {status.value: 0 for status in MatchStatus}
    for item in items:
        by_status[item.match.status.value] += 1

    result: dict[str, Any] = {
        "success": True,
        "parsed": len(candidates),
        "previewed": len(items),
        "matched": by_status[MatchStatus.MATCHED.value],
        "multiple_matches": by_status[MatchStatus.MULTIPLE_MATCHES.value],
        "unmatched": by_status[MatchStatus.UNMATCHED.value],
        "duplicates": sum(1 for item in items if item.is_potential_duplicate),
        "inserted": 0,
        "failed": 0,
        "warnings": builder.warnings,
    }

    if not commit:
        return result
    if dry_run:
        logger.info("Dry run mode - not saving to database")
        result["dry_run"] = True
        return result

    selected = auto_import_indices(items)
    rows = prepare_import_data(items, selected, import_source=settings.import_source)
    batch = BatchCommitEngine(request_repo).insert_batch(rows)

    result.update(
        success=batch.success or not rows,
        inserted=batch.inserted_count,
        failed=batch.failed_count,
        errors=batch.error_messages if rows else [],
    )
    return result


def main() -> None:
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="Import PLD/SDV requests from a calendar export")
    parser.add_argument("--file", required=True, help="Path to the .ics export")
    parser.add_argument("--calendar-id", required=True, help="Calendar the requests belong to")
    parser.add_argument("--year", type=int, required=True, help="Only import requests dated in this year")
    parser.add_argument("--division", help="Restrict member matching to this division")
    parser.add_argument("--commit", action="store_true", help="Insert unambiguous, non-duplicate requests")
    parser.add_argument("--dry-run", action="store_true", help="Report what --commit would do without saving")
    parser.add_argument("--stats-output", type=str, help="Write JSON stats to this file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    if args.dry_run and not args.commit:
        parser.error("--dry-run only applies together with --commit")

    configure_logging(source="ical-import", level=resolve_level(get_settings().log_level, debug=args.debug))

    try:
        content = Path(args.file).read_text(encoding="utf-8")
        pb = ConnectionManager.get_instance().get_client()
        ConfigLoader.initialize(pb)

        result = run_import(
            content,
            calendar_id=args.calendar_id,
            year=args.year,
            pb=pb,
            division_id=args.division,
            commit=args.commit,
            dry_run=args.dry_run,
        )
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        if args.stats_output:
            with open(args.stats_output, "w") as f:
                json.dump({"success": False, "inserted": 0, "failed": 0, "errors": 1}, f)
        sys.exit(1)

    if args.stats_output:
        stats = {k: v for k, v in result.items() if k not in ("warnings", "errors")}
        stats["warnings"] = len(result.get("warnings", []))
        with open(args.stats_output, "w") as f:
            json.dump(stats, f)
        logger.info(f"Wrote stats to {args.stats_output}")

    print(f"\nParsed {result['parsed']} requests, previewed {result['previewed']}")
    print(f"- Matched: {result['matched']}")
    print(f"- Multiple matches: {result['multiple_matches']}")
    print(f"- Unmatched: {result['unmatched']}")
    print(f"- Already stored: {result['duplicates']}")
    if args.commit and not args.dry_run:
        print(f"- Inserted: {result['inserted']}")
        print(f"- Failed: {result['failed']}")
    for warning in result["warnings"]:
        print(f"  warning: {warning}")

    if not result["success"]:
        print("\nImport failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
