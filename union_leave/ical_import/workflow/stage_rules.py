"""Stage completion rules and transitions.

Completion predicates are pure functions of a snapshot and may be evaluated
any number of times. Transitions return a new snapshot; the only backward
move is return_to_over_allotment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from ..core.errors import StageValidationError
from ..core.models import STAGE_ORDER, ImportStage
from .capacity import AllotmentImpactAnalysis, analyze_queued_db_changes_impact, apply_impact_to_capacity
from .staged_preview import ProgressState, StagedImportPreview, with_progress, with_stage_data

logger = logging.getLogger(__name__)


def next_stage(stage: ImportStage) -> ImportStage | None:
    position = stage.position
    return STAGE_ORDER[position + 1] if position + 1 < len(STAGE_ORDER) else None


def is_stage_complete(preview: StagedImportPreview, stage: ImportStage) -> bool:
    """Whether a stage's completion condition holds for this snapshot"""
    data = preview.stage_data

    if stage == ImportStage.UNMATCHED:
        unmatched = data.unmatched
        return len(unmatched.resolved_assignments) + len(unmatched.skipped_items) >= len(unmatched.unmatched_item_ids)

    if stage == ImportStage.DUPLICATES:
        duplicates = data.duplicates
        return all(
            item_id in duplicates.resolutions or item_id in data.unmatched.skipped_items
            for item_id in duplicates.duplicate_item_ids
        )

    if stage == ImportStage.OVER_ALLOTMENT:
        over = data.over_allotment
        if not over.is_analyzed:
            return False
        for capacity in over.over_allotted_dates:
            has_ordering = capacity.request_date in over.request_ordering
            has_adjustment = capacity.request_date in over.allotment_adjustments
            if not (has_ordering or has_adjustment):
                # Defaults accepted: earliest requests approved, the rest waitlisted
                continue
            if not has_ordering:
                return False
            if not has_adjustment and capacity.over_allotment_count > 0:
                return False
        return True

    if stage == ImportStage.DB_RECONCILIATION:
        reconciliation = data.db_reconciliation
        return reconciliation.is_fetched and all(
            conflict.db_request.id in reconciliation.reviewed_conflicts for conflict in reconciliation.conflicts
        )

    return True


def refresh_completion(preview: StagedImportPreview) -> StagedImportPreview:
    """Re-derive the current stage's completion flag and can_progress"""
    stage = preview.current_stage
    complete = is_stage_complete(preview, stage)
    updated = with_stage_data(preview, stage, is_complete=complete)
    return with_progress(updated, can_progress=complete)


def update_stage_completion(preview: StagedImportPreview, stage: ImportStage, is_complete: bool) -> StagedImportPreview:
    """Set a stage's completion flag explicitly"""
    updated = with_stage_data(preview, stage, is_complete=is_complete)
    if stage == preview.current_stage:
        updated = with_progress(updated, can_progress=is_complete)
    return updated


def _advance(preview: StagedImportPreview) -> StagedImportPreview:
    stage = preview.current_stage
    target = next_stage(stage)
    if target is None:
        raise StageValidationError(f"{stage.value} is the last stage")
    if not is_stage_complete(preview, stage):
        raise StageValidationError(f"Cannot leave {stage.value}: stage is not complete")

    completed = preview.progress_state.completed_stages
    if stage not in completed:
        completed = tuple(s for s in STAGE_ORDER if s in completed or s == stage)

    advanced = with_stage_data(preview, stage, is_complete=True)
    advanced = with_progress(advanced, current_stage=target, completed_stages=completed)
    logger.info(f"Import workflow advanced {stage.value} -> {target.value}")
    return refresh_completion(advanced)


def advance_to_next_stage(preview: StagedImportPreview) -> StagedImportPreview:
    """Move to the next stage once the current one is complete.

    Leaving database reconciliation is refused while queued changes affect
    capacity on an import date; call return_to_over_allotment or
    proceed_to_final_review instead.

    Raises:
        StageValidationError: If the current stage is incomplete, is the last stage,
            or queued changes need a capacity decision
    """
    if preview.current_stage == ImportStage.DB_RECONCILIATION:
        impact = analyze_queued_db_changes_impact(preview)
        if impact.requires_over_allotment_return:
            raise StageValidationError(
                "Queued database changes affect allotment capacity; "
                "return to over-allotment review or proceed to final review explicitly"
            )
    return _advance(preview)


def proceed_to_final_review(preview: StagedImportPreview) -> StagedImportPreview:
    """Leave database reconciliation for final review, ignoring any capacity impact"""
    if preview.current_stage != ImportStage.DB_RECONCILIATION:
        raise StageValidationError(f"Cannot proceed to final review from {preview.current_stage.value}")
    return _advance(preview)


def return_to_over_allotment(preview: StagedImportPreview, impact: AllotmentImpactAnalysis) -> StagedImportPreview:
    """Go back to over-allotment review with capacity figures updated for queued changes.

    Removes db_reconciliation and final_review from the completed stages,
    points the workflow at over_allotment and marks that stage incomplete,
    all in one replacement of the snapshot.

    Raises:
        StageValidationError: If not currently in database reconciliation, or if
            conflicts are still unreviewed
    """
    if preview.current_stage != ImportStage.DB_RECONCILIATION:
        raise StageValidationError(f"Cannot return to over-allotment from {preview.current_stage.value}")
    if not is_stage_complete(preview, ImportStage.DB_RECONCILIATION):
        raise StageValidationError("Cannot return to over-allotment: conflicts are still unreviewed")

    state = preview.progress_state
    stage_data = replace(
        state.stage_data,
        over_allotment=apply_impact_to_capacity(state.stage_data.over_allotment, impact),
    )
    rolled_back = tuple(
        s for s in state.completed_stages if s not in (ImportStage.DB_RECONCILIATION, ImportStage.FINAL_REVIEW)
    )

    logger.info(f"Returning to over-allotment review: {len(impact.affected_dates)} dates affected by queued changes")
    return replace(
        preview,
        progress_state=ProgressState(
            current_stage=ImportStage.OVER_ALLOTMENT,
            completed_stages=rolled_back,
            can_progress=False,
            stage_data=stage_data,
        ),
        last_updated=datetime.now(),
    )


@dataclass(frozen=True)
class ProgressMetrics:
    total_stages: int
    completed_stages: int
    current_stage_index: int
    percent_complete: int
    total_items: int
    items_to_import: int
    items_skipped: int
    open_conflicts: int


def calculate_progress_metrics(preview: StagedImportPreview) -> ProgressMetrics:
    reconciliation = preview.stage_data.db_reconciliation
    open_conflicts = sum(
        1 for c in reconciliation.conflicts if c.db_request.id not in reconciliation.reviewed_conflicts
    )
    completed = len(preview.progress_state.completed_stages)

    return ProgressMetrics(
        total_stages=len(STAGE_ORDER),
        completed_stages=completed,
        current_stage_index=preview.current_stage.position,
        percent_complete=round(completed * 100 / len(STAGE_ORDER)),
        total_items=len(preview.original_items),
        items_to_import=len(preview.active_items()),
        items_skipped=len(preview.skipped_items()),
        open_conflicts=open_conflicts,
    )
