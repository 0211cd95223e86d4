"""Request repository for data access.

Handles database operations on pld_sdv_requests. Reads raise on failure so
the duplicate detector decides whether to fail open."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from pocketbase import PocketBase

from ...core.models import ExistingRequest, LeaveType, RequestStatus
from ..pocketbase_wrapper import PocketBaseWrapper
from ._fields import escape_filter_value, get_field, parse_date_field, parse_datetime_field

logger = logging.getLogger(__name__)

COLLECTION = "pld_sdv_requests"


class RequestRepository:
    """Repository for persisted leave requests"""

    def __init__(self, pb_client: PocketBase | PocketBaseWrapper, page_size: int = 200) -> None:
        self.pb = pb_client
        self.page_size = page_size

    def find_matching(
        self,
        calendar_id: str,
        request_date: date,
        member_id: str | None = None,
        pin_number: int | None = None,
    ) -> list[ExistingRequest]:
        """Requests for one member on one date, identified by member_id else pin_number"""
        filter_parts = [
            f"calendar_id = '{escape_filter_value(calendar_id)}'",
            f"request_date = '{request_date.isoformat()}'",
        ]
        if member_id:
            filter_parts.append(f"member_id = '{escape_filter_value(member_id)}'")
        elif pin_number is not None:
            filter_parts.append(f"pin_number = {int(pin_number)}")
        else:
            raise ValueError("find_matching needs a member_id or pin_number")

        return self._query(" && ".join(filter_parts))

    def find_in_range(
        self,
        calendar_id: str,
        start: date,
        end: date,
        statuses: tuple[RequestStatus, ...] | None = None,
    ) -> list[ExistingRequest]:
        filter_str = (
            f"calendar_id = '{escape_filter_value(calendar_id)}' && "
            f"request_date >= '{start.isoformat()}' && request_date <= '{end.isoformat()}'"
        )
        if statuses:
            filter_str += " && (" + " || ".join(f"status = '{s.value}'" for s in statuses) + ")"
        return self._query(filter_str)

    def insert_many(self, records: list[dict[str, Any]]) -> list[str]:
        """Insert every record in one batch transaction.

        Raises:
            Exception: From the batch endpoint; no record is written
        """
        if not records:
            return []

        path = f"/api/collections/{COLLECTION}/records"
        responses = self.pb.batch([{"method": "POST", "url": path, "body": record} for record in records])
        ids = [str(get_field(response.get("body") or {}, "id", "")) for response in responses]
        logger.debug(f"Batch inserted {len(ids)} requests")
        return ids

    def insert_one(self, record: dict[str, Any]) -> str:
        result = self.pb.collection(COLLECTION).create(record)
        return str(result.id)

    def update_status(self, request_id: str, status: RequestStatus, fields: dict[str, Any] | None = None) -> None:
        data = {"status": status.value}
        if fields:
            data.update(fields)
        try:
            self.pb.collection(COLLECTION).update(request_id, data)
        except Exception as e:
            logger.warning(f"Error updating request {request_id} to {status.value}: {e}")
            raise

    def _query(self, filter_str: str) -> list[ExistingRequest]:
        try:
            records = self.pb.collection(COLLECTION).get_full_list(
                batch=self.page_size, query_params={"filter": filter_str, "sort": "request_date"}
            )
        except Exception as e:
            logger.warning(f"Error querying requests ({filter_str}): {e}")
            raise
        return [self._map_from_db(record) for record in records]

    def _map_from_db(self, db_record: Any) -> ExistingRequest:
        pin = get_field(db_record, "pin_number")
        position = get_field(db_record, "waitlist_position")
        return ExistingRequest(
            id=str(get_field(db_record, "id")),
            calendar_id=get_field(db_record, "calendar_id"),
            request_date=parse_date_field(get_field(db_record, "request_date")),
            leave_type=LeaveType(get_field(db_record, "leave_type")),
            status=RequestStatus(get_field(db_record, "status")),
            member_id=get_field(db_record, "member_id") or None,
            pin_number=int(pin) if pin not in (None, "") else None,
            waitlist_position=int(position) if position not in (None, "", 0) else None,
            requested_at=parse_datetime_field(get_field(db_record, "requested_at")),
            import_source=get_field(db_record, "import_source") or None,
        )
