"""Tests for BatchCommitEngine"""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import Mock

import pytest

from union_leave.ical_import.commit import BatchCommitEngine
from union_leave.ical_import.commit.batch_commit import NO_SELECTION_MESSAGE
from union_leave.ical_import.core.models import (
    ExistingRequest,
    ImportRow,
    LeaveType,
    QueuedDbChange,
    RequestStatus,
)

MARCH_15 = date(2025, 3, 15)


def make_row(member_id="m1", status=RequestStatus.APPROVED, waitlist_position=None, request_date=MARCH_15):
    return ImportRow(
        calendar_id="cal1",
        request_date=request_date,
        leave_type=LeaveType.PLD,
        status=status,
        requested_at=datetime(2025, 1, 10, 9, 0),
        imported_at=datetime(2025, 2, 1, 12, 0),
        member_id=member_id,
        waitlist_position=waitlist_position,
    )


@pytest.fixture
def store():
    store = Mock()
    store.find_in_range.return_value = []
    store.insert_many.side_effect = lambda records: [f"id{i}" for i in range(len(records))]
    return store


class TestInsertBatch:
    def test_empty_selection(self, store):
        result = BatchCommitEngine(store).insert_batch([])

        assert result.success is False
        assert result.error_messages == [NO_SELECTION_MESSAGE]
        store.insert_many.assert_not_called()

    def test_bulk_insert(self, store):
        result = BatchCommitEngine(store).insert_batch([make_row("m1"), make_row("m2")])

        assert result.success is True
        assert result.inserted_count == 2
        assert result.inserted_ids == ["id0", "id1"]
        records = store.insert_many.call_args[0][0]
        assert records[0]["member_id"] == "m1"
        assert records[0]["request_date"] == "2025-03-15"
        assert records[0]["status"] == "approved"

    def test_fallback_isolates_failing_row(self, store):
        store.insert_many.side_effect = RuntimeError("batch rejected")

        def insert_one(record):
            if record["member_id"] == "m5":
                raise RuntimeError("validation failed")
            return f"new-{record['member_id']}"

        store.insert_one.side_effect = insert_one
        rows = [make_row(f"m{i}") for i in range(10)]

        result = BatchCommitEngine(store).insert_batch(rows)

        assert result.success is True
        assert result.inserted_count == 9
        assert result.failed_count == 1
        assert result.total == 10
        assert result.failed_indices == [5]
        assert result.failed_items[0].error == "validation failed"
        assert result.error_messages == ["Row 5: validation failed"]
        assert store.insert_one.call_count == 10

    def test_every_row_failing(self, store):
        store.insert_many.side_effect = RuntimeError("batch rejected")
        store.insert_one.side_effect = RuntimeError("db down")

        result = BatchCommitEngine(store).insert_batch([make_row("m1"), make_row("m2")])

        assert result.success is False
        assert result.failed_indices == [0, 1]


class TestInsertWithWaitlistPositions:
    def test_collision_aborts_batch(self, store):
        store.find_in_range.return_value = [
            ExistingRequest(
                id="r1",
                calendar_id="cal1",
                request_date=MARCH_15,
                leave_type=LeaveType.PLD,
                status=RequestStatus.WAITLISTED,
                member_id="m9",
                waitlist_position=1,
            )
        ]
        rows = [make_row("m1"), make_row("m2", RequestStatus.WAITLISTED, 1), make_row("m3", RequestStatus.WAITLISTED, 2)]

        result = BatchCommitEngine(store).insert_batch_with_waitlist_positions(rows)

        assert result.success is False
        assert result.inserted_count == 0
        assert result.failed_count == 3
        assert result.error_messages == ["Row 1: waitlist position 1 already taken for cal1 on 2025-03-15"]
        store.insert_many.assert_not_called()

    def test_free_positions_inserted(self, store):
        rows = [make_row("m1"), make_row("m2", RequestStatus.WAITLISTED, 1)]

        result = BatchCommitEngine(store).insert_batch_with_waitlist_positions(rows)

        assert result.success is True
        assert store.insert_many.call_args[0][0][1]["waitlist_position"] == 1
        store.find_in_range.assert_called_once_with(
            "cal1", MARCH_15, MARCH_15, statuses=(RequestStatus.WAITLISTED,)
        )

    def test_empty_selection(self, store):
        result = BatchCommitEngine(store).insert_batch_with_waitlist_positions([])

        assert result.error_messages == [NO_SELECTION_MESSAGE]


def make_change(request_id, new_status=RequestStatus.CANCELLED, admin_id=None):
    return QueuedDbChange(
        request_id=request_id,
        current_status=RequestStatus.APPROVED,
        new_status=new_status,
        request_date=MARCH_15,
        leave_type=LeaveType.PLD,
        timestamp=datetime(2025, 2, 1, 12, 0),
        admin_reason="No longer on the calendar",
        admin_id=admin_id,
    )


class TestApplyQueuedChanges:
    def test_applies_each_change(self, store):
        changes = [make_change("r1"), make_change("r2", RequestStatus.TRANSFERRED, admin_id="admin2")]

        result = BatchCommitEngine(store).apply_queued_changes(changes, admin_id="admin1")

        assert result.success is True
        assert result.applied_ids == ["r1", "r2"]
        first, second = store.update_status.call_args_list
        request_id, status, fields = first[0]
        assert (request_id, status) == ("r1", RequestStatus.CANCELLED)
        assert fields["actioned_by"] == "admin1"
        assert fields["metadata"]["import_reconciliation"] == {
            "previous_status": "approved",
            "reason": "No longer on the calendar",
            "queued_at": "2025-02-01T12:00:00",
        }
        assert second[0][2]["actioned_by"] == "admin2"

    def test_failure_does_not_stop_others(self, store):
        store.update_status.side_effect = [RuntimeError("not found"), None]

        result = BatchCommitEngine(store).apply_queued_changes([make_change("r1"), make_change("r2")])

        assert result.success is False
        assert result.applied_ids == ["r2"]
        assert result.failed_items[0].index == 0
        assert result.failed_items[0].error == "not found"
