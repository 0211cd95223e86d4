"""Final review: the set of rows the commit will write.

Applies every earlier decision to the preview items: skipped items drop
out, assigned members replace the matcher's result, and on over-allotted
dates the ordering and allotment decide which requests are approved and
which join the waitlist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from ..core.errors import StageValidationError
from ..core.models import ImportPreviewItem, ImportRow, ImportStage, Member, RequestStatus
from .staged_preview import OverAllotmentStageData, StagedImportPreview

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinalReviewEntry:
    """One request that will be inserted"""

    item: ImportPreviewItem
    member: Member
    status: RequestStatus
    waitlist_position: int | None = None

    def to_import_row(self, import_source: str, imported_at: datetime) -> ImportRow:
        return ImportRow(
            calendar_id=self.item.calendar_id,
            request_date=self.item.request_date,
            leave_type=self.item.leave_type,
            status=self.status,
            requested_at=self.item.requested_at,
            imported_at=imported_at,
            member_id=self.member.id,
            pin_number=self.member.pin_number,
            import_source=import_source,
            waitlist_position=self.waitlist_position,
        )


@dataclass(frozen=True)
class AllotmentChange:
    request_date: date
    old_allotment: int
    new_allotment: int


@dataclass(frozen=True)
class FinalReview:
    entries: tuple[FinalReviewEntry, ...]
    skipped_items: tuple[ImportPreviewItem, ...]
    allotment_changes: tuple[AllotmentChange, ...]
    queued_change_count: int

    @property
    def approved_count(self) -> int:
        return sum(1 for e in self.entries if e.status == RequestStatus.APPROVED)

    @property
    def waitlisted_count(self) -> int:
        return sum(1 for e in self.entries if e.status == RequestStatus.WAITLISTED)

    def to_import_rows(self, import_source: str = "ical", imported_at: datetime | None = None) -> list[ImportRow]:
        stamp = imported_at or datetime.now()
        return [entry.to_import_row(import_source, stamp) for entry in self.entries]


def _ordered_approved(
    over: OverAllotmentStageData, request_date: date, approved: list[tuple[ImportPreviewItem, Member]]
) -> list[tuple[ImportPreviewItem, Member]]:
    ordering = over.request_ordering.get(request_date)
    if ordering is None:
        return sorted(approved, key=lambda pair: pair[0].requested_at)
    rank = {item_id: index for index, item_id in enumerate(ordering)}
    return sorted(approved, key=lambda pair: rank.get(pair[0].item_id, len(rank)))


def build_final_review(preview: StagedImportPreview) -> FinalReview:
    """Resolve every import item to its final status and waitlist position.

    Dates without capacity figures are imported as the calendar has them.

    Raises:
        StageValidationError: If the over-allotment stage has not been completed
    """
    if ImportStage.OVER_ALLOTMENT not in preview.progress_state.completed_stages:
        raise StageValidationError("Final review requires a completed over-allotment review")

    over = preview.stage_data.over_allotment
    by_date: dict[date, list[tuple[ImportPreviewItem, Member]]] = {}
    for item, member in preview.active_items():
        by_date.setdefault(item.request_date, []).append((item, member))

    entries: list[FinalReviewEntry] = []
    for request_date in sorted(by_date):
        pairs = by_date[request_date]
        approved = [p for p in pairs if p[0].status == RequestStatus.APPROVED]
        waitlisted = sorted(
            (p for p in pairs if p[0].status != RequestStatus.APPROVED), key=lambda pair: pair[0].requested_at
        )

        capacity = over.capacity_for(request_date)
        if capacity is None:
            entries.extend(FinalReviewEntry(item, member, item.status) for item, member in approved)
            entries.extend(FinalReviewEntry(item, member, RequestStatus.WAITLISTED) for item, member in waitlisted)
            continue

        slots = max(0, over.effective_allotment(capacity) - capacity.existing_requests)
        ordered = _ordered_approved(over, request_date, approved)
        overflow = ordered[slots:]
        if overflow:
            logger.debug(f"{request_date}: {len(overflow)} requests moved to the waitlist")

        entries.extend(FinalReviewEntry(item, member, RequestStatus.APPROVED) for item, member in ordered[:slots])
        next_position = capacity.max_waitlist_position + 1
        for item, member in overflow + waitlisted:
            entries.append(FinalReviewEntry(item, member, RequestStatus.WAITLISTED, next_position))
            next_position += 1

    allotment_changes = tuple(
        AllotmentChange(capacity.request_date, capacity.current_allotment, over.allotment_adjustments[capacity.request_date])
        for capacity in over.date_capacity
        if capacity.request_date in over.allotment_adjustments
        and over.allotment_adjustments[capacity.request_date] != capacity.current_allotment
    )

    return FinalReview(
        entries=tuple(entries),
        skipped_items=tuple(preview.skipped_items()),
        allotment_changes=allotment_changes,
        queued_change_count=len(preview.stage_data.db_reconciliation.queued_changes),
    )
