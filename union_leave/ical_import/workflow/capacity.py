"""Allotment capacity analysis for the over-allotment stage.

Capacity is computed per calendar date covered by the import: stored
requests holding a slot plus the approved requests being imported, against
the date's allotment. Queued status changes from database reconciliation
shift those figures; the impact analysis tells the workflow whether an
earlier capacity decision has gone stale.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import date

from ..core.interfaces import AllotmentStore, RequestStore
from ..core.models import ExistingRequest, ImportStage, RequestStatus
from .staged_preview import (
    DateCapacity,
    OverAllotmentStageData,
    StagedImportPreview,
    frozen_map,
    with_stage_data,
)

logger = logging.getLogger(__name__)

# Statuses that hold one of the date's slots
OCCUPYING_STATUSES = frozenset({RequestStatus.APPROVED, RequestStatus.PENDING, RequestStatus.CANCELLATION_PENDING})


def occupies_slot(status: RequestStatus) -> bool:
    return status in OCCUPYING_STATUSES


def build_date_capacity(
    preview: StagedImportPreview,
    existing: list[ExistingRequest],
    allotments: Mapping[date, int],
) -> tuple[DateCapacity, ...]:
    """Capacity figures for every date that has an item to import.

    Args:
        preview: Current snapshot; skipped items are ignored
        existing: Stored requests for the calendar covering the import dates
        allotments: Allotment per date (missing dates count as 0)
    """
    dates = sorted({item.request_date for item, _ in preview.active_items()})
    capacities = []

    for request_date in dates:
        on_date = [row for row in existing if row.request_date == request_date]
        positions = [row.waitlist_position for row in on_date if row.waitlist_position is not None]
        capacities.append(
            DateCapacity(
                request_date=request_date,
                current_allotment=allotments.get(request_date, 0),
                existing_requests=sum(1 for row in on_date if occupies_slot(row.status)),
                import_item_ids=preview.approved_import_ids(request_date),
                max_waitlist_position=max(positions, default=0),
            )
        )

    return tuple(capacities)


def analyze_over_allotment(
    preview: StagedImportPreview,
    request_store: RequestStore,
    allotment_store: AllotmentStore,
) -> tuple[DateCapacity, ...]:
    """Load stored requests and allotments and compute capacity per import date"""
    dates = sorted({item.request_date for item, _ in preview.active_items()})
    if not dates:
        return ()

    existing = request_store.find_in_range(preview.calendar_id, dates[0], dates[-1])
    allotments = {d: allotment_store.get_max_allotment(preview.calendar_id, d) for d in dates}
    capacities = build_date_capacity(preview, existing, allotments)

    over = [c for c in capacities if c.is_over_allotted]
    logger.info(f"Capacity analysis: {len(capacities)} dates, {len(over)} over allotment")
    for capacity in over:
        logger.debug(
            f"{capacity.request_date}: allotment {capacity.current_allotment}, "
            f"existing {capacity.existing_requests}, importing {capacity.import_count}, "
            f"over by {capacity.over_allotment_count}"
        )
    return capacities


def set_over_allotment_analysis(
    preview: StagedImportPreview, capacities: tuple[DateCapacity, ...]
) -> StagedImportPreview:
    """Store fresh capacity figures; decisions for dates still over allotment are kept"""
    over_dates = {c.request_date for c in capacities if c.is_over_allotted}
    data = preview.stage_data.over_allotment
    return with_stage_data(
        preview,
        ImportStage.OVER_ALLOTMENT,
        date_capacity=tuple(capacities),
        allotment_adjustments=frozen_map((d, v) for d, v in data.allotment_adjustments.items() if d in over_dates),
        request_ordering=frozen_map((d, v) for d, v in data.request_ordering.items() if d in over_dates),
        is_analyzed=True,
    )


@dataclass(frozen=True)
class DateImpact:
    """Effect of queued status changes on one date"""

    request_date: date
    slot_delta: int
    change_ids: tuple[str, ...]
    was_over_allotted: bool
    now_over_allotted: bool


@dataclass(frozen=True)
class AllotmentImpactAnalysis:
    affected_dates: tuple[DateImpact, ...] = ()

    @property
    def requires_over_allotment_return(self) -> bool:
        """A capacity decision was made, or is now needed, on a date whose figures changed"""
        return any(d.was_over_allotted or d.now_over_allotted for d in self.affected_dates)

    @property
    def change_ids(self) -> tuple[str, ...]:
        return tuple(cid for d in self.affected_dates for cid in d.change_ids)

    def warning_message(self) -> str:
        lines = [
            f"{d.request_date.isoformat()}: {'+' if d.slot_delta > 0 else ''}{d.slot_delta} slots"
            + (" (over allotment)" if d.now_over_allotted else "")
            for d in self.affected_dates
        ]
        return "Queued database changes affect allotment capacity on:\n" + "\n".join(lines)


def analyze_queued_db_changes_impact(preview: StagedImportPreview) -> AllotmentImpactAnalysis:
    """Check whether queued status changes shift capacity on dates being imported.

    Changes already folded into the capacity figures are ignored.
    """
    over_data = preview.stage_data.over_allotment
    queued = [
        change
        for change in preview.stage_data.db_reconciliation.queued_changes
        if change.request_id not in over_data.applied_change_ids
    ]

    deltas: dict[date, int] = {}
    change_ids: dict[date, list[str]] = {}
    for change in queued:
        delta = int(occupies_slot(change.new_status)) - int(occupies_slot(change.current_status))
        if delta == 0:
            continue
        deltas[change.request_date] = deltas.get(change.request_date, 0) + delta
        change_ids.setdefault(change.request_date, []).append(change.request_id)

    affected = []
    for request_date in sorted(deltas):
        capacity = over_data.capacity_for(request_date)
        if capacity is None or deltas[request_date] == 0:
            continue

        allotment = over_data.effective_allotment(capacity)
        before = capacity.existing_requests + capacity.import_count
        after = before + deltas[request_date]
        affected.append(
            DateImpact(
                request_date=request_date,
                slot_delta=deltas[request_date],
                change_ids=tuple(change_ids[request_date]),
                was_over_allotted=capacity.is_over_allotted,
                now_over_allotted=after > allotment,
            )
        )
        logger.debug(f"{request_date}: {before} -> {after} of {allotment} slots after queued changes")

    return AllotmentImpactAnalysis(affected_dates=tuple(affected))


def apply_impact_to_capacity(data: OverAllotmentStageData, impact: AllotmentImpactAnalysis) -> OverAllotmentStageData:
    """Fold queued status changes into the stored capacity figures"""
    deltas = {d.request_date: d.slot_delta for d in impact.affected_dates}
    capacities = tuple(
        replace(c, existing_requests=max(0, c.existing_requests + deltas[c.request_date]))
        if c.request_date in deltas
        else c
        for c in data.date_capacity
    )
    return replace(
        data,
        date_capacity=capacities,
        applied_change_ids=data.applied_change_ids | frozenset(impact.change_ids),
        is_complete=False,
    )
