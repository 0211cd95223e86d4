"""Tests for stage completion rules and transitions"""

from __future__ import annotations

from datetime import date

import pytest
from factories import make_existing, make_item, make_member

from union_leave.ical_import.core.errors import StageValidationError
from union_leave.ical_import.core.models import (
    ConflictAction,
    ConflictSeverity,
    ConflictType,
    DbConflict,
    ImportStage,
    MatchResult,
    RequestStatus,
)
from union_leave.ical_import.workflow import (
    DateCapacity,
    advance_to_next_stage,
    assign_member,
    calculate_progress_metrics,
    create_staged_preview,
    is_stage_complete,
    proceed_to_final_review,
    record_conflict_action,
    return_to_over_allotment,
    set_allotment_adjustment,
    set_db_conflicts,
    set_over_allotment_analysis,
    set_request_ordering,
    skip_item,
    update_stage_completion,
)
from union_leave.ical_import.workflow.capacity import analyze_queued_db_changes_impact
from union_leave.ical_import.workflow.stage_rules import refresh_completion
from union_leave.ical_import.workflow.staged_preview import with_progress

MARCH_15 = date(2025, 3, 15)


def unmatched_item(item_id):
    return make_item(match=MatchResult.unmatched(), item_id=item_id)


def to_over_allotment(preview, capacities):
    preview = advance_to_next_stage(preview)
    preview = advance_to_next_stage(preview)
    return refresh_completion(set_over_allotment_analysis(preview, capacities))


def waitlisted_conflict(request_id="r5"):
    row = make_existing(request_id, "m5", MARCH_15, RequestStatus.WAITLISTED, waitlist_position=1)
    return DbConflict(
        id=f"status_mismatch-{request_id}",
        type=ConflictType.STATUS_MISMATCH,
        severity=ConflictSeverity.HIGH,
        db_request=row,
        member_name="Bob Jones",
        request_date=MARCH_15,
        description="Database status is waitlisted but calendar shows approved",
    )


@pytest.fixture
def matched_preview():
    item = make_item(make_member("m1"), item_id="a")
    return create_staged_preview([item], "cal1")


class TestUnmatchedCompletion:
    def test_all_matched_can_progress_immediately(self, matched_preview):
        assert matched_preview.progress_state.can_progress is True
        assert matched_preview.stage_data.unmatched.is_complete is True

    def test_assigned_plus_skipped_covers_unmatched(self):
        preview = create_staged_preview([unmatched_item(i) for i in ("a", "b", "c")], "cal1")

        preview = assign_member(preview, "a", make_member("m1"))
        preview = assign_member(preview, "b", make_member("m2"))
        preview = skip_item(preview, "c")

        assert is_stage_complete(preview, ImportStage.UNMATCHED) is True
        assert preview.progress_state.can_progress is True

    def test_unresolved_item_blocks_progress(self):
        preview = create_staged_preview([unmatched_item(i) for i in ("a", "b", "c")], "cal1")

        preview = assign_member(preview, "a", make_member("m1"))
        preview = assign_member(preview, "b", make_member("m2"))

        assert is_stage_complete(preview, ImportStage.UNMATCHED) is False
        with pytest.raises(StageValidationError, match="not complete"):
            advance_to_next_stage(preview)


class TestAdvance:
    def test_advance_records_completed_stage(self, matched_preview):
        advanced = advance_to_next_stage(matched_preview)

        assert advanced.current_stage == ImportStage.DUPLICATES
        assert advanced.progress_state.completed_stages == (ImportStage.UNMATCHED,)

    def test_last_stage_cannot_advance(self, matched_preview):
        preview = with_progress(matched_preview, current_stage=ImportStage.FINAL_REVIEW)

        with pytest.raises(StageValidationError, match="last stage"):
            advance_to_next_stage(preview)

    def test_earlier_snapshot_unchanged(self, matched_preview):
        advance_to_next_stage(matched_preview)

        assert matched_preview.current_stage == ImportStage.UNMATCHED
        assert matched_preview.progress_state.completed_stages == ()

    def test_update_stage_completion_sets_can_progress(self, matched_preview):
        updated = update_stage_completion(matched_preview, ImportStage.UNMATCHED, False)

        assert updated.stage_data.unmatched.is_complete is False
        assert updated.progress_state.can_progress is False


class TestOverAllotmentCompletion:
    def capacity(self, existing=2):
        return DateCapacity(MARCH_15, current_allotment=2, existing_requests=existing, import_item_ids=("a",))

    def test_not_complete_before_analysis(self, matched_preview):
        preview = advance_to_next_stage(advance_to_next_stage(matched_preview))

        assert is_stage_complete(preview, ImportStage.OVER_ALLOTMENT) is False

    def test_defaults_accepted_without_decisions(self, matched_preview):
        preview = to_over_allotment(matched_preview, (self.capacity(),))

        assert preview.progress_state.can_progress is True

    def test_ordering_without_adjustment_is_incomplete(self, matched_preview):
        preview = to_over_allotment(matched_preview, (self.capacity(),))

        preview = set_request_ordering(preview, MARCH_15, ["a"])

        assert preview.progress_state.can_progress is False

    def test_ordering_with_adjustment_is_complete(self, matched_preview):
        preview = to_over_allotment(matched_preview, (self.capacity(),))

        preview = set_request_ordering(preview, MARCH_15, ["a"])
        preview = set_allotment_adjustment(preview, MARCH_15, 3)

        assert preview.progress_state.can_progress is True

    def test_adjustment_without_ordering_is_incomplete(self, matched_preview):
        preview = to_over_allotment(matched_preview, (self.capacity(),))

        preview = set_allotment_adjustment(preview, MARCH_15, 3)

        assert preview.progress_state.can_progress is False


class TestDbReconciliationTransitions:
    def reconciliation_preview(self, matched_preview):
        capacity = DateCapacity(MARCH_15, current_allotment=2, existing_requests=1, import_item_ids=("a",))
        preview = to_over_allotment(matched_preview, (capacity,))
        preview = advance_to_next_stage(preview)
        return set_db_conflicts(preview, [waitlisted_conflict()])

    def test_unreviewed_conflict_blocks_progress(self, matched_preview):
        preview = self.reconciliation_preview(matched_preview)

        assert preview.current_stage == ImportStage.DB_RECONCILIATION
        assert preview.progress_state.can_progress is False

    def test_capacity_impact_refuses_plain_advance(self, matched_preview):
        preview = self.reconciliation_preview(matched_preview)
        preview = record_conflict_action(preview, "status_mismatch-r5", ConflictAction.APPROVE)

        assert preview.progress_state.can_progress is True
        with pytest.raises(StageValidationError, match="allotment capacity"):
            advance_to_next_stage(preview)

    def test_proceed_ignores_capacity_impact(self, matched_preview):
        preview = self.reconciliation_preview(matched_preview)
        preview = record_conflict_action(preview, "status_mismatch-r5", ConflictAction.APPROVE)

        proceeded = proceed_to_final_review(preview)

        assert proceeded.current_stage == ImportStage.FINAL_REVIEW

    def test_return_to_over_allotment(self, matched_preview):
        preview = self.reconciliation_preview(matched_preview)
        preview = record_conflict_action(preview, "status_mismatch-r5", ConflictAction.APPROVE)
        impact = analyze_queued_db_changes_impact(preview)

        returned = return_to_over_allotment(preview, impact)

        over = returned.stage_data.over_allotment
        assert returned.current_stage == ImportStage.OVER_ALLOTMENT
        assert returned.progress_state.can_progress is False
        assert over.date_capacity[0].existing_requests == 2
        assert over.applied_change_ids == frozenset({"r5"})
        assert preview.stage_data.over_allotment.date_capacity[0].existing_requests == 1

    def test_return_requires_reviewed_conflicts(self, matched_preview):
        preview = self.reconciliation_preview(matched_preview)

        with pytest.raises(StageValidationError, match="unreviewed"):
            return_to_over_allotment(preview, analyze_queued_db_changes_impact(preview))

    def test_return_removes_only_later_stages(self, matched_preview):
        preview = self.reconciliation_preview(matched_preview)
        preview = record_conflict_action(preview, "status_mismatch-r5", ConflictAction.KEEP)
        preview = with_progress(
            preview,
            completed_stages=(
                ImportStage.UNMATCHED,
                ImportStage.DUPLICATES,
                ImportStage.OVER_ALLOTMENT,
                ImportStage.DB_RECONCILIATION,
                ImportStage.FINAL_REVIEW,
            ),
        )

        returned = return_to_over_allotment(preview, analyze_queued_db_changes_impact(preview))

        assert returned.progress_state.completed_stages == (
            ImportStage.UNMATCHED,
            ImportStage.DUPLICATES,
            ImportStage.OVER_ALLOTMENT,
        )

    def test_return_only_from_reconciliation(self, matched_preview):
        with pytest.raises(StageValidationError):
            return_to_over_allotment(matched_preview, analyze_queued_db_changes_impact(matched_preview))

    def test_proceed_only_from_reconciliation(self, matched_preview):
        with pytest.raises(StageValidationError):
            proceed_to_final_review(matched_preview)


class TestProgressMetrics:
    def test_counts(self):
        items = [make_item(make_member("m1"), item_id="a"), unmatched_item("b")]
        preview = skip_item(create_staged_preview(items, "cal1"), "b")
        preview = advance_to_next_stage(preview)

        metrics = calculate_progress_metrics(preview)

        assert metrics.total_stages == 5
        assert metrics.completed_stages == 1
        assert metrics.current_stage_index == 1
        assert metrics.percent_complete == 20
        assert metrics.total_items == 2
        assert metrics.items_to_import == 1
        assert metrics.items_skipped == 1
