"""Detect disagreements between the calendar import and stored requests.

Runs when the workflow enters database reconciliation. Each conflict points
at one stored request; the administrator resolves it by recording an action
against that request's id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..core.interfaces import RequestStore
from ..core.models import (
    ConflictAction,
    ConflictSeverity,
    ConflictType,
    DbConflict,
    ExistingRequest,
    ImportPreviewItem,
    Member,
    RequestStatus,
)

logger = logging.getLogger(__name__)

_STATUS_ACTIONS = {
    RequestStatus.APPROVED: ConflictAction.APPROVE,
    RequestStatus.WAITLISTED: ConflictAction.WAITLIST,
}


@dataclass
class DbConflictResult:
    """Result of conflict detection"""

    conflicts: list[DbConflict]
    by_type: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def _member_keys(member_id: str | None, pin_number: int | None) -> list[str]:
    """Lookup keys for a member; a stored row may carry only one of id or PIN"""
    keys = []
    if member_id:
        keys.append(f"id:{member_id}")
    if pin_number is not None:
        keys.append(f"pin:{pin_number}")
    return keys


class DbConflictDetector:
    """Compares import items with the requests already stored for their members"""

    def __init__(self, request_store: RequestStore | None = None):
        self.request_store = request_store
        self._stats = {"runs": 0, "total_conflicts": 0}

    def fetch_and_detect(
        self,
        calendar_id: str,
        items: list[tuple[ImportPreviewItem, Member]],
        skipped_duplicates: list[tuple[ImportPreviewItem, Member]] | None = None,
    ) -> DbConflictResult:
        """Load stored requests covering the import's date range and detect conflicts.

        Args:
            calendar_id: Calendar being imported
            items: Items that will be imported, each with its resolved member
            skipped_duplicates: Calendar entries left out because they are already stored
        """
        if not items:
            return DbConflictResult(conflicts=[])
        if self.request_store is None:
            raise ValueError("fetch_and_detect requires a request store")

        dates = [item.request_date for item, _ in items]
        existing = self.request_store.find_in_range(calendar_id, min(dates), max(dates))
        logger.debug(f"Loaded {len(existing)} stored requests between {min(dates)} and {max(dates)}")
        return self.detect(items, existing, skipped_duplicates)

    def detect(
        self,
        items: list[tuple[ImportPreviewItem, Member]],
        existing: list[ExistingRequest],
        skipped_duplicates: list[tuple[ImportPreviewItem, Member]] | None = None,
    ) -> DbConflictResult:
        """Detect conflicts between import items and stored requests.

        Only stored requests belonging to members present in the import and
        falling inside the import's date range are considered. Rows matching a
        skipped duplicate are in the calendar and are never reported.

        Args:
            items: Items that will be imported, each with its resolved member
            existing: Stored requests for the calendar
            skipped_duplicates: Calendar entries left out because they are already stored

        Returns:
            DbConflictResult, conflicts ordered by date then member
        """
        self._stats["runs"] += 1
        if not items:
            return DbConflictResult(conflicts=[])

        imported: dict[tuple[str, date], tuple[ImportPreviewItem, Member]] = {}
        member_names: dict[str, str] = {}
        for item, member in items:
            for key in _member_keys(member.id, member.pin_number):
                imported[(key, item.request_date)] = (item, member)
                member_names[key] = member.full_name

        already_stored = {
            (key, item.request_date)
            for item, member in skipped_duplicates or ()
            for key in _member_keys(member.id, member.pin_number)
        }

        first_date = min(item.request_date for item, _ in items)
        last_date = max(item.request_date for item, _ in items)

        conflicts: list[DbConflict] = []
        for row in existing:
            key = next((k for k in _member_keys(row.member_id, row.pin_number) if k in member_names), None)
            if key is None:
                continue
            if not first_date <= row.request_date <= last_date:
                continue
            if any((k, row.request_date) in already_stored for k in _member_keys(row.member_id, row.pin_number)):
                continue

            match = imported.get((key, row.request_date))
            if match is None:
                if row.status.is_active:
                    conflicts.append(self._missing_from_ical(row, member_names[key]))
                continue

            item, member = match
            if row.leave_type != item.leave_type:
                conflicts.append(self._leave_type_conflict(row, item, member))
            elif row.status != item.status:
                conflicts.append(self._status_mismatch(row, item, member))

        conflicts.sort(key=lambda c: (c.request_date, c.member_name, c.db_request.id))
        result = DbConflictResult(
            conflicts=conflicts,
            by_type=self._count(c.type.value for c in conflicts),
            by_severity=self._count(c.severity.value for c in conflicts),
        )

        self._stats["total_conflicts"] += len(conflicts)
        if conflicts:
            logger.info(f"Found {len(conflicts)} conflicts with stored requests: {result.by_type}")
        return result

    def _missing_from_ical(self, row: ExistingRequest, member_name: str) -> DbConflict:
        severity = ConflictSeverity.MEDIUM if row.status == RequestStatus.APPROVED else ConflictSeverity.LOW
        # Rows written by an earlier calendar import default to cancel
        suggested = ConflictAction.CANCEL if row.import_source == "ical" else ConflictAction.KEEP
        return DbConflict(
            id=f"{ConflictType.MISSING_FROM_ICAL.value}-{row.id}",
            type=ConflictType.MISSING_FROM_ICAL,
            severity=severity,
            db_request=row,
            member_name=member_name,
            member_id=row.member_id,
            request_date=row.request_date,
            description=(
                f"{row.status.value.capitalize()} {row.leave_type.value} on {row.request_date.isoformat()} "
                f"exists in the database but not in the calendar"
            ),
            suggested_action=suggested,
        )

    def _leave_type_conflict(self, row: ExistingRequest, item: ImportPreviewItem, member: Member) -> DbConflict:
        return DbConflict(
            id=f"{ConflictType.LEAVE_TYPE_CONFLICT.value}-{row.id}",
            type=ConflictType.LEAVE_TYPE_CONFLICT,
            severity=ConflictSeverity.MEDIUM,
            db_request=row,
            ical_request=item,
            member_name=member.full_name,
            member_id=member.id,
            request_date=row.request_date,
            description=(
                f"Database has {row.leave_type.value} but calendar has {item.leave_type.value} "
                f"on {row.request_date.isoformat()}"
            ),
            suggested_action=ConflictAction.KEEP,
        )

    def _status_mismatch(self, row: ExistingRequest, item: ImportPreviewItem, member: Member) -> DbConflict:
        slot_changes_hands = {row.status, item.status} == {RequestStatus.APPROVED, RequestStatus.WAITLISTED}
        return DbConflict(
            id=f"{ConflictType.STATUS_MISMATCH.value}-{row.id}",
            type=ConflictType.STATUS_MISMATCH,
            severity=ConflictSeverity.HIGH if slot_changes_hands else ConflictSeverity.MEDIUM,
            db_request=row,
            ical_request=item,
            member_name=member.full_name,
            member_id=member.id,
            request_date=row.request_date,
            description=(
                f"Database status is {row.status.value} but calendar shows {item.status.value} "
                f"on {row.request_date.isoformat()}"
            ),
            suggested_action=_STATUS_ACTIONS.get(item.status, ConflictAction.KEEP),
        )

    @staticmethod
    def _count(values: Any) -> dict[str, int]:
        counts: dict[str, int] = {}
        for value in values:
            counts[value] = counts.get(value, 0) + 1
        return counts

    def get_stats(self) -> dict[str, Any]:
        """Get conflict detection statistics"""
        return self._stats.copy()
