"""Administrator actions for each workflow stage.

Every action is accepted only while its stage is the current stage, returns
a new snapshot, and re-derives the stage's completion flag.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime

from ..core.errors import StageValidationError, UnknownItemError
from ..core.models import (
    ConflictAction,
    DbConflict,
    DuplicateResolution,
    ImportStage,
    Member,
    QueuedDbChange,
)
from .stage_rules import advance_to_next_stage, refresh_completion
from .staged_preview import StagedImportPreview, map_with, map_without, with_stage_data

logger = logging.getLogger(__name__)


def _require_stage(preview: StagedImportPreview, stage: ImportStage) -> None:
    if preview.current_stage != stage:
        raise StageValidationError(
            f"{stage.value} decisions can only be changed during that stage (current: {preview.current_stage.value})"
        )


# ---------------------------------------------------------------------------
# Unmatched members
# ---------------------------------------------------------------------------


def assign_member(preview: StagedImportPreview, item_id: str, member: Member) -> StagedImportPreview:
    """Assign a roster member to an unmatched or ambiguous item"""
    _require_stage(preview, ImportStage.UNMATCHED)
    data = preview.stage_data.unmatched
    if item_id not in data.unmatched_item_ids:
        raise UnknownItemError(f"Item {item_id} is not awaiting member resolution")

    updated = with_stage_data(
        preview,
        ImportStage.UNMATCHED,
        resolved_assignments=map_with(data.resolved_assignments, item_id, member),
        skipped_items=data.skipped_items - {item_id},
    )
    logger.debug(f"Assigned {member.full_name} to item {item_id}")
    return refresh_completion(updated)


def skip_item(preview: StagedImportPreview, item_id: str) -> StagedImportPreview:
    """Leave an unmatched item out of the import"""
    _require_stage(preview, ImportStage.UNMATCHED)
    data = preview.stage_data.unmatched
    if item_id not in data.unmatched_item_ids:
        raise UnknownItemError(f"Item {item_id} is not awaiting member resolution")

    updated = with_stage_data(
        preview,
        ImportStage.UNMATCHED,
        resolved_assignments=map_without(data.resolved_assignments, item_id),
        skipped_items=data.skipped_items | {item_id},
    )
    return refresh_completion(updated)


def unskip_item(preview: StagedImportPreview, item_id: str) -> StagedImportPreview:
    _require_stage(preview, ImportStage.UNMATCHED)
    data = preview.stage_data.unmatched
    updated = with_stage_data(preview, ImportStage.UNMATCHED, skipped_items=data.skipped_items - {item_id})
    return refresh_completion(updated)


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------


def add_duplicate_items(preview: StagedImportPreview, item_ids: Iterable[str]) -> StagedImportPreview:
    """Flag more items as duplicates, e.g. ones whose member was assigned by hand"""
    _require_stage(preview, ImportStage.DUPLICATES)
    data = preview.stage_data.duplicates
    known = set(data.duplicate_item_ids)
    added = tuple(item_id for item_id in dict.fromkeys(item_ids) if item_id not in known)
    for item_id in added:
        preview.item(item_id)

    updated = with_stage_data(preview, ImportStage.DUPLICATES, duplicate_item_ids=data.duplicate_item_ids + added)
    return refresh_completion(updated)


def resolve_duplicate(
    preview: StagedImportPreview, item_id: str, resolution: DuplicateResolution
) -> StagedImportPreview:
    """Skip a duplicate, or import it anyway"""
    _require_stage(preview, ImportStage.DUPLICATES)
    data = preview.stage_data.duplicates
    if item_id not in data.duplicate_item_ids:
        raise UnknownItemError(f"Item {item_id} is not flagged as a duplicate")

    updated = with_stage_data(
        preview, ImportStage.DUPLICATES, resolutions=map_with(data.resolutions, item_id, resolution)
    )
    return refresh_completion(updated)


# ---------------------------------------------------------------------------
# Over-allotment
# ---------------------------------------------------------------------------


def set_allotment_adjustment(preview: StagedImportPreview, request_date: date, allotment: int) -> StagedImportPreview:
    """Record the allotment to use for an over-allotted date"""
    _require_stage(preview, ImportStage.OVER_ALLOTMENT)
    if allotment < 0:
        raise ValueError(f"Allotment cannot be negative: {allotment}")

    data = preview.stage_data.over_allotment
    if data.capacity_for(request_date) is None:
        raise UnknownItemError(f"No capacity figures for {request_date.isoformat()}")

    updated = with_stage_data(
        preview,
        ImportStage.OVER_ALLOTMENT,
        allotment_adjustments=map_with(data.allotment_adjustments, request_date, allotment),
    )
    return refresh_completion(updated)


def set_request_ordering(
    preview: StagedImportPreview, request_date: date, item_ids: Iterable[str]
) -> StagedImportPreview:
    """Record the order in which a date's imported requests claim slots.

    The ordering must list every approved import item for the date exactly once.
    """
    _require_stage(preview, ImportStage.OVER_ALLOTMENT)
    data = preview.stage_data.over_allotment
    capacity = data.capacity_for(request_date)
    if capacity is None:
        raise UnknownItemError(f"No capacity figures for {request_date.isoformat()}")

    ordering = tuple(item_ids)
    if sorted(ordering) != sorted(capacity.import_item_ids):
        raise ValueError(f"Ordering for {request_date.isoformat()} must list each imported request once")

    updated = with_stage_data(
        preview,
        ImportStage.OVER_ALLOTMENT,
        request_ordering=map_with(data.request_ordering, request_date, ordering),
    )
    return refresh_completion(updated)


def clear_over_allotment_decision(preview: StagedImportPreview, request_date: date) -> StagedImportPreview:
    """Drop ordering and adjustment for a date, reverting to the defaults"""
    _require_stage(preview, ImportStage.OVER_ALLOTMENT)
    data = preview.stage_data.over_allotment
    updated = with_stage_data(
        preview,
        ImportStage.OVER_ALLOTMENT,
        allotment_adjustments=map_without(data.allotment_adjustments, request_date),
        request_ordering=map_without(data.request_ordering, request_date),
    )
    return refresh_completion(updated)


# ---------------------------------------------------------------------------
# Database reconciliation
# ---------------------------------------------------------------------------


def set_db_conflicts(preview: StagedImportPreview, conflicts: Iterable[DbConflict]) -> StagedImportPreview:
    """Store the conflicts found on entering reconciliation.

    With no conflicts the stage is complete and the workflow moves straight
    on to final review.
    """
    _require_stage(preview, ImportStage.DB_RECONCILIATION)
    found = tuple(conflicts)
    updated = refresh_completion(
        with_stage_data(preview, ImportStage.DB_RECONCILIATION, conflicts=found, is_fetched=True)
    )

    if not found:
        logger.info("No conflicts with stored requests, skipping reconciliation review")
        return advance_to_next_stage(updated)
    return updated


def record_conflict_action(
    preview: StagedImportPreview,
    conflict_id: str,
    action: ConflictAction,
    admin_reason: str | None = None,
    admin_id: str | None = None,
    now: datetime | None = None,
) -> StagedImportPreview:
    """Record the administrator's decision for one conflict.

    KEEP only marks the stored request reviewed. Any other action queues a
    status change for it, replacing an earlier queued change for the same
    request; nothing is written until commit.
    """
    _require_stage(preview, ImportStage.DB_RECONCILIATION)
    data = preview.stage_data.db_reconciliation

    conflict = next((c for c in data.conflicts if c.id == conflict_id), None)
    if conflict is None:
        raise UnknownItemError(f"No conflict with id {conflict_id}")

    row = conflict.db_request
    queued = tuple(change for change in data.queued_changes if change.request_id != row.id)

    target = action.target_status
    if target is not None and target != row.status:
        queued += (
            QueuedDbChange(
                request_id=row.id,
                current_status=row.status,
                new_status=target,
                request_date=row.request_date,
                leave_type=row.leave_type,
                timestamp=now or datetime.now(),
                member_id=row.member_id,
                pin_number=row.pin_number,
                admin_reason=admin_reason,
                admin_id=admin_id,
            ),
        )

    updated = with_stage_data(
        preview,
        ImportStage.DB_RECONCILIATION,
        reviewed_conflicts=data.reviewed_conflicts | {row.id},
        conflict_actions=map_with(data.conflict_actions, row.id, action),
        queued_changes=queued,
    )
    logger.debug(f"Conflict {conflict_id}: {action.value}")
    return refresh_completion(updated)
