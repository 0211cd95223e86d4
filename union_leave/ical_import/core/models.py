"""Core domain models for the calendar leave import.

These models represent the business concepts shared by every stage of the
pipeline and are independent of PocketBase."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class LeaveType(Enum):
    """Leave day types

    PLD: personal leave day
    SDV: single day vacation
    """

    PLD = "PLD"
    SDV = "SDV"


class RequestStatus(Enum):
    """Status of a leave request

    Note: Values must match the pld_sdv_requests status field
    """

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    WAITLISTED = "waitlisted"
    CANCELLATION_PENDING = "cancellation_pending"
    CANCELLED = "cancelled"
    TRANSFERRED = "transferred"

    @property
    def is_active(self) -> bool:
        """Statuses that still hold or queue for a slot"""
        return self in (RequestStatus.APPROVED, RequestStatus.WAITLISTED, RequestStatus.PENDING)


class MatchStatus(Enum):
    """Outcome of resolving a calendar name against the roster"""

    MATCHED = "matched"
    MULTIPLE_MATCHES = "multiple_matches"
    UNMATCHED = "unmatched"


class ImportStage(Enum):
    """Stages of the reconciliation workflow, in order"""

    UNMATCHED = "unmatched"
    DUPLICATES = "duplicates"
    OVER_ALLOTMENT = "over_allotment"
    DB_RECONCILIATION = "db_reconciliation"
    FINAL_REVIEW = "final_review"

    @property
    def position(self) -> int:
        return STAGE_ORDER.index(self)


STAGE_ORDER: tuple[ImportStage, ...] = (
    ImportStage.UNMATCHED,
    ImportStage.DUPLICATES,
    ImportStage.OVER_ALLOTMENT,
    ImportStage.DB_RECONCILIATION,
    ImportStage.FINAL_REVIEW,
)


class ConflictType(Enum):
    """Kinds of disagreement between the calendar and stored requests"""

    MISSING_FROM_ICAL = "missing_from_ical"
    STATUS_MISMATCH = "status_mismatch"
    LEAVE_TYPE_CONFLICT = "leave_type_conflict"


class ConflictSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConflictAction(Enum):
    """Administrator decisions for a stored request in conflict"""

    KEEP = "keep"
    CANCEL = "cancel"
    APPROVE = "approve"
    WAITLIST = "waitlist"
    TRANSFER = "transfer"

    @property
    def target_status(self) -> RequestStatus | None:
        """Status the stored request moves to, None for KEEP"""
        return _ACTION_STATUS.get(self)


_ACTION_STATUS = {
    ConflictAction.CANCEL: RequestStatus.CANCELLED,
    ConflictAction.APPROVE: RequestStatus.APPROVED,
    ConflictAction.WAITLIST: RequestStatus.WAITLISTED,
    ConflictAction.TRANSFER: RequestStatus.TRANSFERRED,
}


class DuplicateResolution(Enum):
    """How a flagged duplicate is handled"""

    SKIP = "skip"
    OVERRIDE = "override"


@dataclass(frozen=True)
class ParsedSummary:
    """Fields recovered from one calendar SUMMARY line"""

    first_name: str
    last_name: str
    leave_type: LeaveType
    is_waitlisted: bool = False
    original_request_month_day: str | None = None


@dataclass(frozen=True)
class CandidateRequest:
    """A leave request recovered from the calendar export"""

    first_name: str
    last_name: str
    leave_type: LeaveType
    request_date: date
    is_waitlisted: bool
    created_at: datetime
    original_request_date: date | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Member:
    """A roster member as seen by the matcher"""

    id: str | None
    pin_number: int | None
    first_name: str
    last_name: str
    status: str | None = None
    division_id: str | None = None
    calendar_id: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class MatchedMember:
    """A roster search hit with its 0-100 confidence"""

    member: Member
    match_confidence: int


@dataclass(frozen=True)
class MatchResult:
    """Result of the member matching cascade"""

    status: MatchStatus
    member: Member | None = None
    possible_matches: tuple[Member, ...] = ()

    @classmethod
    def matched(cls, member: Member) -> MatchResult:
        return cls(status=MatchStatus.MATCHED, member=member)

    @classmethod
    def multiple(cls, members: list[Member] | tuple[Member, ...]) -> MatchResult:
        return cls(status=MatchStatus.MULTIPLE_MATCHES, possible_matches=tuple(members))

    @classmethod
    def unmatched(cls) -> MatchResult:
        return cls(status=MatchStatus.UNMATCHED)

    @property
    def is_matched(self) -> bool:
        return self.status == MatchStatus.MATCHED


def new_item_id() -> str:
    """Opaque identifier assigned to a preview item when it is created"""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ImportPreviewItem:
    """One calendar request prepared for review"""

    candidate: CandidateRequest
    match: MatchResult
    status: RequestStatus
    requested_at: datetime
    calendar_id: str
    is_potential_duplicate: bool = False
    item_id: str = field(default_factory=new_item_id)

    @property
    def request_date(self) -> date:
        return self.candidate.request_date

    @property
    def leave_type(self) -> LeaveType:
        return self.candidate.leave_type

    @property
    def member_name(self) -> str:
        if self.match.member is not None:
            return self.match.member.full_name
        return self.candidate.full_name


@dataclass(frozen=True)
class ExistingRequest:
    """A persisted pld_sdv_requests row"""

    id: str
    calendar_id: str
    request_date: date
    leave_type: LeaveType
    status: RequestStatus
    member_id: str | None = None
    pin_number: int | None = None
    waitlist_position: int | None = None
    requested_at: datetime | None = None
    import_source: str | None = None


@dataclass(frozen=True)
class QueuedDbChange:
    """An administrator decision to change a stored request, applied at commit"""

    request_id: str
    current_status: RequestStatus
    new_status: RequestStatus
    request_date: date
    leave_type: LeaveType
    timestamp: datetime
    member_id: str | None = None
    pin_number: int | None = None
    admin_reason: str | None = None
    admin_id: str | None = None


@dataclass(frozen=True)
class DbConflict:
    """A disagreement between the calendar and a stored request"""

    id: str
    type: ConflictType
    severity: ConflictSeverity
    db_request: ExistingRequest
    member_name: str
    request_date: date
    description: str
    ical_request: ImportPreviewItem | None = None
    member_id: str | None = None
    suggested_action: ConflictAction | None = None


@dataclass(frozen=True)
class ImportRow:
    """Insert payload for one pld_sdv_requests record"""

    calendar_id: str
    request_date: date
    leave_type: LeaveType
    status: RequestStatus
    requested_at: datetime
    imported_at: datetime
    member_id: str | None = None
    pin_number: int | None = None
    import_source: str = "ical"
    waitlist_position: int | None = None

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "member_id": self.member_id,
            "pin_number": self.pin_number,
            "calendar_id": self.calendar_id,
            "request_date": self.request_date.isoformat(),
            "leave_type": self.leave_type.value,
            "status": self.status.value,
            "requested_at": self.requested_at.isoformat(),
            "import_source": self.import_source,
            "imported_at": self.imported_at.isoformat(),
        }
        if self.waitlist_position is not None:
            record["waitlist_position"] = self.waitlist_position
        return record


@dataclass(frozen=True)
class FailedItem:
    """A row that could not be inserted, addressed by its position in the batch"""

    index: int
    error: str


@dataclass
class BatchImportResult:
    """Outcome of committing a batch of rows"""

    success: bool
    inserted_count: int = 0
    failed_count: int = 0
    error_messages: list[str] = field(default_factory=list)
    inserted_ids: list[str] = field(default_factory=list)
    failed_items: list[FailedItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted_count + self.failed_count

    @property
    def failed_indices(self) -> list[int]:
        return [item.index for item in self.failed_items]
