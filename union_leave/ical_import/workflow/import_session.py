"""Per-import workflow session.

ImportSession owns one import's current StagedImportPreview and the
snapshots that preceded it, and wires the store-backed steps into the pure
workflow functions: duplicate re-checks for hand-assigned members, the
capacity analysis, the conflict fetch and the final commit. A session is
constructed explicitly for each import and is closed by commit or cancel.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..commit.batch_commit import BatchCommitEngine, QueuedChangeResult
from ..conflict.db_conflict_detector import DbConflictDetector
from ..conflict.duplicate_detector import DuplicateDetector
from ..core.errors import StageValidationError
from ..core.interfaces import AllotmentStore, RequestStore
from ..core.models import (
    BatchImportResult,
    ConflictAction,
    DuplicateResolution,
    FailedItem,
    ImportPreviewItem,
    ImportStage,
    Member,
)
from . import stage_actions
from .capacity import (
    AllotmentImpactAnalysis,
    analyze_over_allotment,
    analyze_queued_db_changes_impact,
    set_over_allotment_analysis,
)
from .final_review import FinalReview, build_final_review
from .stage_rules import (
    ProgressMetrics,
    advance_to_next_stage,
    calculate_progress_metrics,
    proceed_to_final_review,
    refresh_completion,
    return_to_over_allotment,
)
from .staged_preview import StagedImportPreview, create_staged_preview, with_stage_data

logger = logging.getLogger(__name__)


@dataclass
class CommitOutcome:
    """Everything the commit wrote"""

    import_result: BatchImportResult
    queued_changes: QueuedChangeResult
    allotments_updated: list[date] = field(default_factory=list)
    allotment_failures: list[FailedItem] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.import_result.success and self.queued_changes.success and not self.allotment_failures


class ImportSession:
    """State container for one calendar import"""

    def __init__(
        self,
        preview: StagedImportPreview,
        request_store: RequestStore,
        allotment_store: AllotmentStore,
        duplicate_detector: DuplicateDetector | None = None,
        conflict_detector: DbConflictDetector | None = None,
        commit_engine: BatchCommitEngine | None = None,
        import_source: str = "ical",
        admin_id: str | None = None,
    ):
        self.request_store = request_store
        self.allotment_store = allotment_store
        self.duplicate_detector = duplicate_detector or DuplicateDetector(request_store)
        self.conflict_detector = conflict_detector or DbConflictDetector(request_store)
        self.commit_engine = commit_engine or BatchCommitEngine(request_store)
        self.import_source = import_source
        self.admin_id = admin_id

        self._history: list[StagedImportPreview] = []
        self._preview = preview
        self._closed = False

    @classmethod
    def start(
        cls,
        items: Iterable[ImportPreviewItem],
        calendar_id: str,
        request_store: RequestStore,
        allotment_store: AllotmentStore,
        division_id: str | None = None,
        **kwargs: Any,
    ) -> ImportSession:
        """Create the initial snapshot and a session around it"""
        preview = create_staged_preview(items, calendar_id, division_id)
        logger.info(
            f"Import session started for calendar {calendar_id}: {len(preview.original_items)} items, "
            f"{len(preview.stage_data.unmatched.unmatched_item_ids)} need a member"
        )
        return cls(preview, request_store, allotment_store, **kwargs)

    @property
    def preview(self) -> StagedImportPreview:
        return self._preview

    @property
    def history(self) -> tuple[StagedImportPreview, ...]:
        """Earlier snapshots, oldest first"""
        return tuple(self._history)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _update(self, preview: StagedImportPreview) -> StagedImportPreview:
        if self._closed:
            raise StageValidationError("Import session is closed")
        if preview is not self._preview:
            self._history.append(self._preview)
            self._preview = preview
        return preview

    # -- stage actions ------------------------------------------------------

    def assign_member(self, item_id: str, member: Member) -> StagedImportPreview:
        return self._update(stage_actions.assign_member(self._preview, item_id, member))

    def skip_item(self, item_id: str) -> StagedImportPreview:
        return self._update(stage_actions.skip_item(self._preview, item_id))

    def unskip_item(self, item_id: str) -> StagedImportPreview:
        return self._update(stage_actions.unskip_item(self._preview, item_id))

    def resolve_duplicate(self, item_id: str, resolution: DuplicateResolution) -> StagedImportPreview:
        return self._update(stage_actions.resolve_duplicate(self._preview, item_id, resolution))

    def set_allotment_adjustment(self, request_date: date, allotment: int) -> StagedImportPreview:
        return self._update(stage_actions.set_allotment_adjustment(self._preview, request_date, allotment))

    def set_request_ordering(self, request_date: date, item_ids: Iterable[str]) -> StagedImportPreview:
        return self._update(stage_actions.set_request_ordering(self._preview, request_date, item_ids))

    def record_conflict_action(
        self, conflict_id: str, action: ConflictAction, admin_reason: str | None = None
    ) -> StagedImportPreview:
        return self._update(
            stage_actions.record_conflict_action(
                self._preview, conflict_id, action, admin_reason=admin_reason, admin_id=self.admin_id
            )
        )

    # -- transitions --------------------------------------------------------

    def advance(self) -> StagedImportPreview:
        """Move to the next stage and run that stage's entry step"""
        return self._update(self._enter(advance_to_next_stage(self._preview)))

    def complete_db_reconciliation(self) -> AllotmentImpactAnalysis:
        """Leave reconciliation, going back to capacity review if queued changes require it"""
        impact = analyze_queued_db_changes_impact(self._preview)
        if impact.requires_over_allotment_return:
            logger.warning(impact.warning_message())
            self._update(return_to_over_allotment(self._preview, impact))
        else:
            self._update(proceed_to_final_review(self._preview))
        return impact

    def return_to_over_allotment(self) -> AllotmentImpactAnalysis:
        impact = analyze_queued_db_changes_impact(self._preview)
        self._update(return_to_over_allotment(self._preview, impact))
        return impact

    def proceed_to_final_review(self) -> StagedImportPreview:
        return self._update(proceed_to_final_review(self._preview))

    def _enter(self, preview: StagedImportPreview) -> StagedImportPreview:
        stage = preview.current_stage

        if stage == ImportStage.DUPLICATES:
            return self._recheck_assigned_duplicates(preview)

        if stage == ImportStage.OVER_ALLOTMENT:
            capacities = analyze_over_allotment(preview, self.request_store, self.allotment_store)
            return refresh_completion(set_over_allotment_analysis(preview, capacities))

        if stage == ImportStage.DB_RECONCILIATION and not preview.stage_data.db_reconciliation.is_fetched:
            result = self.conflict_detector.fetch_and_detect(
                preview.calendar_id, preview.active_items(), preview.skipped_duplicates()
            )
            logger.info(f"Found {len(result.conflicts)} conflicts with stored requests")
            return stage_actions.set_db_conflicts(preview, result.conflicts)

        return preview

    def _recheck_assigned_duplicates(self, preview: StagedImportPreview) -> StagedImportPreview:
        """Run the duplicate check for items whose member was assigned by hand"""
        flagged = []
        for item_id, member in preview.stage_data.unmatched.resolved_assignments.items():
            item = preview.item(item_id)
            if self.duplicate_detector.check_for_duplicate(
                member.id, member.pin_number, item.request_date, preview.calendar_id
            ):
                flagged.append(item_id)

        if flagged:
            logger.info(f"{len(flagged)} assigned items already exist in the store")
            return stage_actions.add_duplicate_items(preview, flagged)
        return preview

    # -- review and commit --------------------------------------------------

    def final_review(self) -> FinalReview:
        return build_final_review(self._preview)

    def progress(self) -> ProgressMetrics:
        return calculate_progress_metrics(self._preview)

    def commit(self) -> CommitOutcome:
        """Write the import.

        Waitlist positions are validated before anything is written; a
        collision aborts the commit with nothing applied. Otherwise queued
        status changes are applied first, then allotment changes, then the new
        requests. A failed write is recorded in the outcome. The session is
        closed afterwards whatever the outcome.

        Raises:
            StageValidationError: If the workflow has not reached final review
        """
        if self._preview.current_stage != ImportStage.FINAL_REVIEW:
            raise StageValidationError(f"Cannot commit from {self._preview.current_stage.value}")

        review = build_final_review(self._preview)
        self._update(with_stage_data(self._preview, ImportStage.FINAL_REVIEW, is_ready_for_import=True))
        rows = review.to_import_rows(import_source=self.import_source)

        try:
            aborted = self.commit_engine.check_waitlist_positions(rows) if rows else None
            if aborted is not None:
                return CommitOutcome(import_result=aborted, queued_changes=QueuedChangeResult())

            queued = self.commit_engine.apply_queued_changes(
                self._preview.stage_data.db_reconciliation.queued_changes, admin_id=self.admin_id
            )

            outcome = CommitOutcome(import_result=BatchImportResult(success=False), queued_changes=queued)
            for index, change in enumerate(review.allotment_changes):
                try:
                    self.allotment_store.set_max_allotment(
                        self._preview.calendar_id, change.request_date, change.new_allotment
                    )
                    outcome.allotments_updated.append(change.request_date)
                except Exception as e:
                    logger.error(f"Could not update allotment for {change.request_date.isoformat()}: {e}")
                    outcome.allotment_failures.append(FailedItem(index=index, error=str(e)))

            outcome.import_result = self.commit_engine.insert_batch(rows)
            self._update(with_stage_data(self._preview, ImportStage.FINAL_REVIEW, is_complete=True))
            logger.info(
                f"Import committed: {outcome.import_result.inserted_count} inserted, "
                f"{outcome.import_result.failed_count} failed, {len(queued.applied_ids)} stored requests updated, "
                f"{len(outcome.allotments_updated)} allotments changed"
            )
            return outcome
        finally:
            self._closed = True

    def cancel(self) -> None:
        """Discard the session without writing anything"""
        logger.info(f"Import session for calendar {self._preview.calendar_id} cancelled")
        self._history.clear()
        self._closed = True
