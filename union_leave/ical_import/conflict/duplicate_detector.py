"""Presence check for requests that already exist in the store.

A lookup failure is treated as "no duplicate" so a transient read error
does not block the import; every such failure is logged and collected in
``warnings``. Strict mode raises DuplicateCheckError instead.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from ...config import ConfigLoader
from ..core.errors import DuplicateCheckError
from ..core.interfaces import RequestStore

logger = logging.getLogger(__name__)


class DuplicateDetector:
    """Checks whether a member already holds a request for a calendar date"""

    def __init__(self, request_store: RequestStore, strict: bool | None = None):
        """
        Args:
            request_store: Access to persisted requests
            strict: Raise on lookup failure. Defaults to the duplicates.strict_mode config key.
        """
        self.request_store = request_store
        if strict is None:
            strict = ConfigLoader.get_instance().get_bool("duplicates.strict_mode", False)
        self.strict = strict
        self.warnings: list[str] = []
        self._stats = {"checks": 0, "duplicates": 0, "lookup_errors": 0}

    def check_for_duplicate(
        self,
        member_id: str | None,
        pin_number: int | None,
        request_date: date,
        calendar_id: str,
    ) -> bool:
        """Check for an existing request for this member on this calendar date.

        The member is identified by member_id when known, else by pin_number.

        Returns:
            True if at least one matching request exists

        Raises:
            DuplicateCheckError: Only in strict mode, when the lookup fails
        """
        self._stats["checks"] += 1

        if not member_id and pin_number is None:
            logger.debug(f"No member id or PIN for duplicate check on {request_date}")
            return False

        try:
            existing = self.request_store.find_matching(
                calendar_id,
                request_date,
                member_id=member_id or None,
                pin_number=None if member_id else pin_number,
            )
        except Exception as e:
            self._stats["lookup_errors"] += 1
            message = (
                f"Duplicate check failed for member {member_id or pin_number} "
                f"on {request_date.isoformat()} (calendar {calendar_id}): {e}"
            )
            if self.strict:
                logger.error(message)
                raise DuplicateCheckError(message) from e
            logger.warning(f"{message}; treating as no duplicate")
            self.warnings.append(message)
            return False

        is_duplicate = len(existing) > 0
        if is_duplicate:
            self._stats["duplicates"] += 1
        return is_duplicate

    def get_stats(self) -> dict[str, Any]:
        """Get duplicate detection statistics"""
        return self._stats.copy()
