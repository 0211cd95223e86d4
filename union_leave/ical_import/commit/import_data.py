"""Conversion of selected preview items into insert rows."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

from ..core.errors import UnknownItemError
from ..core.models import ImportPreviewItem, ImportRow, MatchStatus, Member

logger = logging.getLogger(__name__)


def member_for_item(item: ImportPreviewItem, resolved_assignments: Mapping[str, Member] | None = None) -> Member | None:
    """Member an item will be imported under.

    An administrator's assignment wins; otherwise the matched member, or the
    first candidate of an ambiguous match.
    """
    if resolved_assignments and item.item_id in resolved_assignments:
        return resolved_assignments[item.item_id]
    if item.match.status == MatchStatus.MATCHED:
        return item.match.member
    if item.match.status == MatchStatus.MULTIPLE_MATCHES and item.match.possible_matches:
        return item.match.possible_matches[0]
    return None


def prepare_import_data(
    items: Sequence[ImportPreviewItem],
    selected_indices: Iterable[int],
    resolved_assignments: Mapping[str, Member] | None = None,
    import_source: str = "ical",
    imported_at: datetime | None = None,
) -> list[ImportRow]:
    """One insert row per selected index, in selection order.

    Unmatched items without an assignment produce a row with neither
    member_id nor pin_number; the store rejects it at insert time and the
    per-row fallback reports it.

    Raises:
        UnknownItemError: If an index is outside the item list
    """
    stamp = imported_at or datetime.now()
    rows = []

    for index in selected_indices:
        if not 0 <= index < len(items):
            raise UnknownItemError(f"No preview item at index {index}")
        item = items[index]
        member = member_for_item(item, resolved_assignments)
        if member is None:
            logger.debug(f"Item {index} ({item.candidate.full_name}) has no member to import under")

        rows.append(
            ImportRow(
                calendar_id=item.calendar_id,
                request_date=item.request_date,
                leave_type=item.leave_type,
                status=item.status,
                requested_at=item.requested_at,
                imported_at=stamp,
                member_id=member.id if member else None,
                pin_number=member.pin_number if member else None,
                import_source=import_source,
            )
        )

    return rows
