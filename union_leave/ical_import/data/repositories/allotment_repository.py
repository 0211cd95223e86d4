"""Allotment repository for data access.

A calendar's allotment for a date is the date-specific row when one exists,
otherwise the yearly row (empty date) for that year, otherwise 0."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from pocketbase import PocketBase

from ..pocketbase_wrapper import PocketBaseWrapper
from ._fields import escape_filter_value, get_field

logger = logging.getLogger(__name__)

COLLECTION = "pld_sdv_allotments"


class AllotmentRepository:
    """Repository for pld_sdv_allotments"""

    def __init__(self, pb_client: PocketBase | PocketBaseWrapper) -> None:
        self.pb = pb_client

    def get_max_allotment(self, calendar_id: str, on_date: date) -> int:
        calendar = escape_filter_value(calendar_id)

        row = self._first(f"calendar_id = '{calendar}' && date = '{on_date.isoformat()}'")
        if row is None:
            row = self._first(f"calendar_id = '{calendar}' && year = {on_date.year} && date = ''")
        if row is None:
            logger.debug(f"No allotment configured for calendar {calendar_id} on {on_date}")
            return 0
        return int(get_field(row, "max_allotment", 0) or 0)

    def set_max_allotment(self, calendar_id: str, on_date: date, max_allotment: int) -> None:
        """Create or update the date-specific allotment row"""
        existing = self._first(
            f"calendar_id = '{escape_filter_value(calendar_id)}' && date = '{on_date.isoformat()}'"
        )
        data = {
            "calendar_id": calendar_id,
            "date": on_date.isoformat(),
            "year": on_date.year,
            "max_allotment": max_allotment,
        }
        try:
            if existing is not None:
                self.pb.collection(COLLECTION).update(get_field(existing, "id"), data)
            else:
                self.pb.collection(COLLECTION).create(data)
        except Exception as e:
            logger.warning(f"Error saving allotment for {calendar_id} on {on_date}: {e}")
            raise
        logger.info(f"Allotment for {calendar_id} on {on_date} set to {max_allotment}")

    def _first(self, filter_str: str) -> Any | None:
        result = self.pb.collection(COLLECTION).get_list(query_params={"filter": filter_str, "perPage": 1})
        return result.items[0] if result.items else None
