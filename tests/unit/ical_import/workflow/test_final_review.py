"""Tests for final review resolution"""

from __future__ import annotations

from datetime import date, datetime

import pytest
from factories import make_item, make_member

from union_leave.ical_import.core.errors import StageValidationError
from union_leave.ical_import.core.models import ImportStage, MatchResult, RequestStatus
from union_leave.ical_import.workflow import (
    DateCapacity,
    advance_to_next_stage,
    build_final_review,
    create_staged_preview,
    set_allotment_adjustment,
    set_db_conflicts,
    set_over_allotment_analysis,
    set_request_ordering,
    skip_item,
)
from union_leave.ical_import.workflow.stage_rules import refresh_completion

MARCH_15 = date(2025, 3, 15)
MARCH_20 = date(2025, 3, 20)


def at(hour):
    return datetime(2025, 1, 10, hour, 0)


def sample_items():
    return [
        make_item(make_member("m1"), item_id="a", requested_at=at(9)),
        make_item(make_member("m2"), item_id="b", requested_at=at(8)),
        make_item(make_member("m3"), item_id="c", requested_at=at(10)),
        make_item(make_member("m4"), item_id="w", requested_at=at(7), status=RequestStatus.WAITLISTED),
    ]


MARCH_15_CAPACITY = DateCapacity(
    MARCH_15, current_allotment=2, existing_requests=1, import_item_ids=("a", "b", "c"), max_waitlist_position=2
)


def reviewed(items, capacities, ordering=None, adjustment=None, skip=()):
    preview = create_staged_preview(items, "cal1")
    for item_id in skip:
        preview = skip_item(preview, item_id)
    preview = advance_to_next_stage(advance_to_next_stage(preview))
    preview = refresh_completion(set_over_allotment_analysis(preview, capacities))
    if ordering is not None:
        preview = set_request_ordering(preview, MARCH_15, ordering)
    if adjustment is not None:
        preview = set_allotment_adjustment(preview, MARCH_15, adjustment)
    preview = advance_to_next_stage(preview)
    preview = set_db_conflicts(preview, [])
    assert preview.current_stage == ImportStage.FINAL_REVIEW
    return preview


def statuses(review):
    return {e.item.item_id: (e.status, e.waitlist_position) for e in review.entries}


class TestBuildFinalReview:
    def test_requires_completed_over_allotment(self):
        preview = create_staged_preview(sample_items(), "cal1")

        with pytest.raises(StageValidationError):
            build_final_review(preview)

    def test_default_ordering_by_request_time(self):
        review = build_final_review(reviewed(sample_items(), (MARCH_15_CAPACITY,)))

        assert statuses(review) == {
            "b": (RequestStatus.APPROVED, None),
            "a": (RequestStatus.WAITLISTED, 3),
            "c": (RequestStatus.WAITLISTED, 4),
            "w": (RequestStatus.WAITLISTED, 5),
        }
        assert review.approved_count == 1
        assert review.waitlisted_count == 3
        assert review.allotment_changes == ()

    def test_ordering_and_adjustment(self):
        preview = reviewed(sample_items(), (MARCH_15_CAPACITY,), ordering=["c", "a", "b"], adjustment=3)

        review = build_final_review(preview)

        assert statuses(review) == {
            "c": (RequestStatus.APPROVED, None),
            "a": (RequestStatus.APPROVED, None),
            "b": (RequestStatus.WAITLISTED, 3),
            "w": (RequestStatus.WAITLISTED, 4),
        }
        (change,) = review.allotment_changes
        assert (change.request_date, change.old_allotment, change.new_allotment) == (MARCH_15, 2, 3)

    def test_adjustment_equal_to_current_is_not_a_change(self):
        preview = reviewed(sample_items(), (MARCH_15_CAPACITY,), ordering=["a", "b", "c"], adjustment=2)

        assert build_final_review(preview).allotment_changes == ()

    def test_dates_without_capacity_keep_calendar_status(self):
        items = [
            make_item(make_member("m1"), item_id="x", request_date=MARCH_20),
            make_item(make_member("m2"), item_id="y", request_date=MARCH_20, status=RequestStatus.WAITLISTED),
        ]

        review = build_final_review(reviewed(items, ()))

        assert statuses(review) == {
            "x": (RequestStatus.APPROVED, None),
            "y": (RequestStatus.WAITLISTED, None),
        }

    def test_skipped_items_listed(self):
        items = [*sample_items(), make_item(match=MatchResult.unmatched(), item_id="u")]

        review = build_final_review(reviewed(items, (MARCH_15_CAPACITY,), skip=("u",)))

        assert [i.item_id for i in review.skipped_items] == ["u"]
        assert "u" not in statuses(review)

    def test_import_rows(self):
        review = build_final_review(reviewed(sample_items(), (MARCH_15_CAPACITY,)))
        stamp = datetime(2025, 2, 1, 12, 0)

        rows = review.to_import_rows(import_source="ical", imported_at=stamp)

        by_member = {row.member_id: row for row in rows}
        assert by_member["m1"].waitlist_position == 3
        assert by_member["m1"].status == RequestStatus.WAITLISTED
        assert by_member["m2"].waitlist_position is None
        assert all(row.imported_at == stamp and row.import_source == "ical" for row in rows)
