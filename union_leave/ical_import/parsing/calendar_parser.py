"""Turn a calendar export into leave request candidates for one year"""

from __future__ import annotations

import logging
from datetime import date, datetime

from ..core.models import CandidateRequest
from .ical_reader import parse_ics
from .summary_parser import parse_summary

logger = logging.getLogger(__name__)


def reconstruct_original_request_date(month_day: str, year: int) -> date | None:
    """Build the date a waitlisted request was first made from its "MM/DD" fragment.

    Returns:
        The date, or None when the fragment is not a valid month/day in that year
    """
    try:
        month_text, day_text = month_day.split("/", 1)
        return date(year, int(month_text), int(day_text))
    except ValueError:
        logger.debug(f"Could not build original request date from '{month_day}' in {year}")
        return None


def parse_ical_for_requests(content: str, target_year: int) -> list[CandidateRequest]:
    """Extract PLD/SDV requests dated in target_year.

    Events without a summary or start date, events in other years and
    summaries in no known layout are skipped.

    Args:
        content: Whole-file calendar text
        target_year: Calendar year being imported

    Returns:
        Candidates in file order
    """
    candidates: list[CandidateRequest] = []
    skipped_unparsed = 0
    skipped_other_year = 0

    for event in parse_ics(content):
        if not event.summary or event.start is None:
            continue

        if event.start.year != target_year:
            skipped_other_year += 1
            continue

        try:
            candidate = _event_to_candidate(event.summary, event.start, event.created)
        except Exception as e:
            logger.error(f"Error parsing event '{event.summary}': {e}")
            continue

        if candidate is None:
            skipped_unparsed += 1
            logger.info(f"Skipping unrecognized calendar entry: '{event.summary}'")
            continue

        candidates.append(candidate)

    logger.info(
        f"Parsed {len(candidates)} leave requests for {target_year} "
        f"({skipped_unparsed} unrecognized, {skipped_other_year} outside year)"
    )
    return candidates


def _event_to_candidate(summary: str, start: datetime, created: datetime | None) -> CandidateRequest | None:
    parsed = parse_summary(summary)
    if parsed is None:
        return None

    original_request_date = None
    if parsed.is_waitlisted and parsed.original_request_month_day:
        year = created.year if created else start.year
        original_request_date = reconstruct_original_request_date(parsed.original_request_month_day, year)

    return CandidateRequest(
        first_name=parsed.first_name,
        last_name=parsed.last_name,
        leave_type=parsed.leave_type,
        request_date=start.date(),
        is_waitlisted=parsed.is_waitlisted,
        created_at=created or datetime.now(),
        original_request_date=original_request_date,
    )
