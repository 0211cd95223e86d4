"""Build the reviewable preview list from parsed calendar requests"""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Any

from ..conflict.duplicate_detector import DuplicateDetector
from ..core.errors import DuplicateCheckError
from ..core.models import CandidateRequest, ImportPreviewItem, RequestStatus
from ..matching.member_matcher import MemberMatcher

logger = logging.getLogger(__name__)


def requested_at_for(candidate: CandidateRequest) -> datetime:
    """When the request was made: the original request date for waitlisted entries, else the entry's creation time"""
    if candidate.is_waitlisted and candidate.original_request_date is not None:
        return datetime.combine(candidate.original_request_date, time())
    return candidate.created_at


class ImportPreviewBuilder:
    """Runs each candidate through matching and duplicate detection"""

    def __init__(self, matcher: MemberMatcher, duplicate_detector: DuplicateDetector):
        self.matcher = matcher
        self.duplicate_detector = duplicate_detector
        self._stats = {
            "candidates": 0,
            "items": 0,
            "dropped": 0,
            "matched": 0,
            "duplicates": 0,
        }
        self._errors: list[str] = []

    def generate_import_preview(
        self,
        candidates: list[CandidateRequest],
        calendar_id: str,
        division_id: str | None = None,
    ) -> list[ImportPreviewItem]:
        """Build one preview item per candidate, in source order.

        A candidate that raises while being processed is logged and left
        out; the others are unaffected.

        Args:
            candidates: Parsed calendar requests
            calendar_id: Calendar the requests are imported into
            division_id: Restricts member matching to this division

        Returns:
            Preview items, each with a fresh item_id

        Raises:
            DuplicateCheckError: When the duplicate detector runs in strict mode and a lookup fails
        """
        items: list[ImportPreviewItem] = []
        self._stats["candidates"] += len(candidates)

        for index, candidate in enumerate(candidates):
            try:
                items.append(self._build_item(candidate, calendar_id, division_id))
            except DuplicateCheckError:
                raise
            except Exception as e:
                self._stats["dropped"] += 1
                message = f"Dropped calendar entry #{index} '{candidate.full_name}' on {candidate.request_date}: {e}"
                logger.error(message)
                self._errors.append(message)

        self._stats["items"] += len(items)
        logger.info(
            f"Built import preview: {len(items)} items "
            f"({self._stats['matched']} matched, {self._stats['duplicates']} potential duplicates, "
            f"{self._stats['dropped']} dropped)"
        )
        return items

    def _build_item(self, candidate: CandidateRequest, calendar_id: str, division_id: str | None) -> ImportPreviewItem:
        match = self.matcher.find_matching_member(candidate.first_name, candidate.last_name, division_id)

        is_duplicate = False
        if match.is_matched and match.member is not None:
            self._stats["matched"] += 1
            is_duplicate = self.duplicate_detector.check_for_duplicate(
                match.member.id,
                match.member.pin_number,
                candidate.request_date,
                calendar_id,
            )
            if is_duplicate:
                self._stats["duplicates"] += 1

        return ImportPreviewItem(
            candidate=candidate,
            match=match,
            status=RequestStatus.WAITLISTED if candidate.is_waitlisted else RequestStatus.APPROVED,
            requested_at=requested_at_for(candidate),
            calendar_id=calendar_id,
            is_potential_duplicate=is_duplicate,
        )

    @property
    def warnings(self) -> list[str]:
        """Fail-open events from matching and duplicate checks, plus dropped items"""
        return [*self.matcher.warnings, *self.duplicate_detector.warnings, *self._errors]

    def get_stats(self) -> dict[str, Any]:
        """Get preview statistics, including matcher and detector counters"""
        return {
            **self._stats,
            "matching": self.matcher.get_stats(),
            "duplicate_checks": self.duplicate_detector.get_stats(),
        }
