"""Member repository for data access.

Read-only access to the members collection for roster search."""

from __future__ import annotations

import logging
from typing import Any

from pocketbase import PocketBase

from ...core.models import Member
from ..pocketbase_wrapper import PocketBaseWrapper
from ._fields import escape_filter_value, get_field

logger = logging.getLogger(__name__)

COLLECTION = "members"


class MemberRepository:
    """Repository for roster members"""

    def __init__(self, pb_client: PocketBase | PocketBaseWrapper) -> None:
        self.pb = pb_client

    def search_by_name(self, first_name: str, last_name: str, division_id: str | None = None) -> list[Member]:
        """Members whose first or last name contains the given fragment.

        Errors propagate so the matcher can record the failed lookup.
        """
        name_parts = []
        if first_name:
            name_parts.append(f"first_name ~ '{escape_filter_value(first_name)}'")
        if last_name:
            name_parts.append(f"last_name ~ '{escape_filter_value(last_name)}'")
        if not name_parts:
            return []

        filter_str = "(" + " || ".join(name_parts) + ")"
        if division_id:
            filter_str += f" && division_id = '{escape_filter_value(division_id)}'"

        try:
            records = self.pb.collection(COLLECTION).get_full_list(query_params={"filter": filter_str})
        except Exception as e:
            logger.warning(f"Error searching members for '{first_name} {last_name}': {e}")
            raise

        members = [self._map_from_db(record) for record in records]
        logger.debug(f"Member search '{first_name} {last_name}' returned {len(members)} rows")
        return members

    def _map_from_db(self, db_record: Any) -> Member:
        pin = get_field(db_record, "pin_number")
        return Member(
            id=get_field(db_record, "id") or None,
            pin_number=int(pin) if pin not in (None, "") else None,
            first_name=get_field(db_record, "first_name") or "",
            last_name=get_field(db_record, "last_name") or "",
            status=get_field(db_record, "status") or None,
            division_id=get_field(db_record, "division_id") or None,
            calendar_id=get_field(db_record, "calendar_id") or None,
        )
