"""Builders for domain objects used across the tests."""

from __future__ import annotations

from datetime import date, datetime

from union_leave.ical_import.core.models import (
    CandidateRequest,
    ExistingRequest,
    ImportPreviewItem,
    LeaveType,
    MatchResult,
    Member,
    RequestStatus,
)


def make_member(
    member_id: str | None = "m1",
    first_name: str = "John",
    last_name: str = "Smith",
    pin_number: int | None = 1001,
    division_id: str | None = None,
) -> Member:
    return Member(
        id=member_id, pin_number=pin_number, first_name=first_name, last_name=last_name, division_id=division_id
    )


def make_candidate(
    first_name: str = "John",
    last_name: str = "Smith",
    request_date: date = date(2025, 3, 15),
    leave_type: LeaveType = LeaveType.PLD,
    is_waitlisted: bool = False,
    created_at: datetime = datetime(2025, 1, 10, 9, 0),
    original_request_date: date | None = None,
) -> CandidateRequest:
    return CandidateRequest(
        first_name=first_name,
        last_name=last_name,
        leave_type=leave_type,
        request_date=request_date,
        is_waitlisted=is_waitlisted,
        created_at=created_at,
        original_request_date=original_request_date,
    )


def make_item(
    member: Member | None = None,
    match: MatchResult | None = None,
    request_date: date = date(2025, 3, 15),
    leave_type: LeaveType = LeaveType.PLD,
    status: RequestStatus = RequestStatus.APPROVED,
    requested_at: datetime = datetime(2025, 1, 10, 9, 0),
    calendar_id: str = "cal1",
    is_potential_duplicate: bool = False,
    item_id: str | None = None,
) -> ImportPreviewItem:
    """Preview item; matched to `member` unless an explicit match is given"""
    if match is None:
        match = MatchResult.matched(member) if member is not None else MatchResult.unmatched()
    first, last = (member.first_name, member.last_name) if member else ("Jane", "Doe")
    extra = {"item_id": item_id} if item_id else {}
    return ImportPreviewItem(
        candidate=make_candidate(
            first,
            last,
            request_date=request_date,
            leave_type=leave_type,
            is_waitlisted=status == RequestStatus.WAITLISTED,
            created_at=requested_at,
        ),
        match=match,
        status=status,
        requested_at=requested_at,
        calendar_id=calendar_id,
        is_potential_duplicate=is_potential_duplicate,
        **extra,
    )


def make_existing(
    request_id: str = "r1",
    member_id: str | None = "m1",
    request_date: date = date(2025, 3, 15),
    status: RequestStatus = RequestStatus.APPROVED,
    leave_type: LeaveType = LeaveType.PLD,
    pin_number: int | None = None,
    waitlist_position: int | None = None,
    import_source: str | None = None,
    calendar_id: str = "cal1",
) -> ExistingRequest:
    return ExistingRequest(
        id=request_id,
        calendar_id=calendar_id,
        request_date=request_date,
        leave_type=leave_type,
        status=status,
        member_id=member_id,
        pin_number=pin_number,
        waitlist_position=waitlist_position,
        import_source=import_source,
    )
