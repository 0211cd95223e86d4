"""Parse the SUMMARY line of a legacy leave calendar entry.

Legacy entries were typed by hand, so the same request shows up as
"FORD-SDV", "Ford - SDV", "Smith, John PLD", "John Smith PLD" or
"J. Smith PLD", optionally followed by "denied req MM/DD" when the request
was waitlisted. Layouts are tried in a fixed order and the first one that
matches wins.

A lone name is always a last name.
"""

from __future__ import annotations

import logging
import re

from ..core.models import LeaveType, ParsedSummary
from ..shared.name_utils import is_initial

logger = logging.getLogger(__name__)

_NAME = r"[A-Za-z][A-Za-z.']*"
_TYPE = r"(?P<leave_type>PLD|SDV)"
_SEP = r"\s+(?:-\s+)?"
_DENIED = r"(?:\s+(?:-\s+)?denied\s+req\s+(?P<month_day>\d{1,2}/\d{1,2}))?"

# (layout name, pattern), in precedence order
_LAYOUTS: list[tuple[str, re.Pattern[str]]] = [
    ("single_name", re.compile(rf"^(?P<last>{_NAME}){_SEP}{_TYPE}{_DENIED}$", re.IGNORECASE)),
    ("last_comma_first", re.compile(rf"^(?P<last>{_NAME}),\s*(?P<first>{_NAME}){_SEP}{_TYPE}{_DENIED}$", re.IGNORECASE)),
    ("first_last", re.compile(rf"^(?P<first>{_NAME})\s+(?P<last>{_NAME}){_SEP}{_TYPE}{_DENIED}$", re.IGNORECASE)),
    ("initial_last", re.compile(rf"^(?P<first>[A-Za-z]\.)\s*(?P<last>{_NAME}){_SEP}{_TYPE}{_DENIED}$", re.IGNORECASE)),
]

_TYPE_ANYWHERE = re.compile(r"(?:^|\s|-)(PLD|SDV)(?=\s|-|$)", re.IGNORECASE)
_DENIED_ANYWHERE = re.compile(r"denied\s+req\s+(\d{1,2}/\d{1,2})", re.IGNORECASE)


def normalize_summary(summary: str) -> str:
    """Canonical " - " around every dash, single spaces, trimmed"""
    text = re.sub(r"\s*-+\s*", " - ", summary)
    return re.sub(r"\s+", " ", text).strip()


def parse_summary(summary: str) -> ParsedSummary | None:
    """Extract name, leave type and waitlist marker from a summary line.

    Args:
        summary: Raw SUMMARY text of one calendar entry

    Returns:
        ParsedSummary, or None when no known layout matches
    """
    if not summary or not summary.strip():
        return None

    text = normalize_summary(summary)

    for layout, pattern in _LAYOUTS:
        match = pattern.match(text)
        if match:
            groups = match.groupdict()
            logger.debug(f"Summary '{summary}' matched layout {layout}")
            return ParsedSummary(
                first_name=(groups.get("first") or "").strip(),
                last_name=groups["last"].strip(),
                leave_type=LeaveType(groups["leave_type"].upper()),
                is_waitlisted=groups["month_day"] is not None,
                original_request_month_day=groups["month_day"],
            )

    parsed = _scan_for_leave_type(text)
    if parsed is None:
        logger.debug(f"Summary '{summary}' did not match any known layout")
    return parsed


def _scan_for_leave_type(text: str) -> ParsedSummary | None:
    """Fallback: locate the leave type anywhere and split the name in front of it"""
    match = _TYPE_ANYWHERE.search(text)
    if match is None:
        return None

    # Rejoin hyphenated names split apart by normalization
    name_part = re.sub(r"\s+-\s+", "-", text[: match.start()]).strip(" -")
    if not name_part:
        return None

    first_name, last_name = _split_name(name_part)
    if not last_name:
        return None

    denied = _DENIED_ANYWHERE.search(text[match.end() :])
    month_day = denied.group(1) if denied else None

    return ParsedSummary(
        first_name=first_name,
        last_name=last_name,
        leave_type=LeaveType(match.group(1).upper()),
        is_waitlisted=month_day is not None,
        original_request_month_day=month_day,
    )


def _split_name(name_part: str) -> tuple[str, str]:
    """Apply the layout heuristics to a free-form name: (first, last)"""
    if "," in name_part:
        last, first = name_part.split(",", 1)
        return first.strip(), last.strip()

    tokens = name_part.split()
    if len(tokens) == 1:
        return "", tokens[0]
    if is_initial(tokens[0]):
        return tokens[0], " ".join(tokens[1:])
    return " ".join(tokens[:-1]), tokens[-1]
