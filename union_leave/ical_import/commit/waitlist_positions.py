"""Waitlist position checks.

New positions are validated against stored positions before a batch is
written; a collision is fatal for the batch. The consistency audit is a
separate, on-demand scan of one date's stored positions.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from ..core.errors import WaitlistPositionError
from ..core.interfaces import RequestStore
from ..core.models import ImportRow, RequestStatus

logger = logging.getLogger(__name__)


def _stored_positions(request_store: RequestStore, calendar_id: str, request_date: date) -> list[int]:
    rows = request_store.find_in_range(calendar_id, request_date, request_date, statuses=(RequestStatus.WAITLISTED,))
    return [row.waitlist_position for row in rows if row.waitlist_position is not None]


def validate_waitlist_positions(rows: Sequence[ImportRow], request_store: RequestStore) -> None:
    """Check that no new position repeats a stored one or another row's.

    Raises:
        WaitlistPositionError: With one message per collision
    """
    by_key: dict[tuple[str, date], list[tuple[int, int]]] = {}
    for index, row in enumerate(rows):
        if row.waitlist_position is None:
            continue
        by_key.setdefault((row.calendar_id, row.request_date), []).append((index, row.waitlist_position))

    errors: list[str] = []
    for (calendar_id, request_date), entries in sorted(by_key.items(), key=lambda kv: (kv[0][1], kv[0][0])):
        label = f"{calendar_id} on {request_date.isoformat()}"
        stored = set(_stored_positions(request_store, calendar_id, request_date))
        seen: dict[int, int] = {}

        for index, position in entries:
            if position < 1:
                errors.append(f"Row {index}: invalid waitlist position {position} for {label}")
            elif position in stored:
                errors.append(f"Row {index}: waitlist position {position} already taken for {label}")
            elif position in seen:
                errors.append(f"Row {index}: waitlist position {position} repeats row {seen[position]} for {label}")
            else:
                seen[position] = index

    if errors:
        raise WaitlistPositionError(errors)


@dataclass(frozen=True)
class WaitlistAudit:
    """Stored waitlist positions for one date and their problems"""

    calendar_id: str
    request_date: date
    positions: tuple[int, ...]
    gaps: tuple[int, ...]
    duplicates: tuple[int, ...]

    @property
    def is_consistent(self) -> bool:
        return not self.gaps and not self.duplicates


def check_waitlist_consistency(request_store: RequestStore, calendar_id: str, request_date: date) -> WaitlistAudit:
    """Report missing and repeated positions among a date's waitlisted requests.

    Positions are expected to run 1..n without gaps.
    """
    positions = sorted(_stored_positions(request_store, calendar_id, request_date))
    counts = Counter(positions)
    highest = positions[-1] if positions else 0

    audit = WaitlistAudit(
        calendar_id=calendar_id,
        request_date=request_date,
        positions=tuple(positions),
        gaps=tuple(p for p in range(1, highest + 1) if p not in counts),
        duplicates=tuple(sorted(p for p, n in counts.items() if n > 1)),
    )
    if not audit.is_consistent:
        logger.warning(
            f"Waitlist for {calendar_id} on {request_date.isoformat()} is inconsistent: "
            f"gaps {list(audit.gaps)}, duplicates {list(audit.duplicates)}"
        )
    return audit
