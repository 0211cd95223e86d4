"""Protocols for the pipeline's collaborators.

The matcher, detectors, workflow and commit engine depend on these contracts
rather than on PocketBase repositories, so tests can substitute simple fakes."""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol

from .models import ExistingRequest, MatchedMember, Member, RequestStatus


class RosterLookup(Protocol):
    """Fuzzy roster search consumed by the member matcher"""

    def find_members_by_name(
        self, first_name: str, last_name: str, division_id: str | None = None
    ) -> list[MatchedMember]:
        """Return candidates sorted by confidence, best first"""
        ...


class MemberStore(Protocol):
    """Read access to the members collection"""

    def search_by_name(self, first_name: str, last_name: str, division_id: str | None = None) -> list[Member]:
        """Members whose names contain the given fragments"""
        ...


class RequestStore(Protocol):
    """Access to persisted leave requests"""

    def find_matching(
        self,
        calendar_id: str,
        request_date: date,
        member_id: str | None = None,
        pin_number: int | None = None,
    ) -> list[ExistingRequest]:
        """Requests for one member on one calendar date; raises on query failure"""
        ...

    def find_in_range(
        self,
        calendar_id: str,
        start: date,
        end: date,
        statuses: tuple[RequestStatus, ...] | None = None,
    ) -> list[ExistingRequest]:
        ...

    def insert_many(self, records: list[dict[str, Any]]) -> list[str]:
        """Insert all records in one transaction; raises if any record fails"""
        ...

    def insert_one(self, record: dict[str, Any]) -> str:
        ...

    def update_status(self, request_id: str, status: RequestStatus, fields: dict[str, Any] | None = None) -> None:
        ...


class AllotmentStore(Protocol):
    """Access to pld_sdv_allotments"""

    def get_max_allotment(self, calendar_id: str, on_date: date) -> int:
        """Date override, else the yearly allotment, else 0"""
        ...

    def set_max_allotment(self, calendar_id: str, on_date: date, max_allotment: int) -> None:
        """Create or update the date-specific allotment"""
        ...
