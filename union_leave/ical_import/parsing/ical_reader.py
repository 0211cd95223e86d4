"""Minimal iCalendar (RFC 5545) reader.

Only VEVENT blocks are read, and only the properties the leave import needs
are typed. Everything else is kept as text under its lower-cased name."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from ..core.errors import ICalFormatError

logger = logging.getLogger(__name__)

_DATE_TIME = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})")
_DATE_ONLY = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_PROPERTY_NAME = re.compile(r"^([A-Za-z0-9\-]+)([;:])", re.MULTILINE)


@dataclass
class ICalEvent:
    """One VEVENT block"""

    uid: str
    summary: str | None = None
    description: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    created: datetime | None = None
    extra: dict[str, str] = field(default_factory=dict)


def _split_lines(content: str) -> list[str]:
    return content.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def _unfold(lines: list[str]) -> list[str]:
    """Join continuation lines (leading space or tab) onto the previous line"""
    unfolded: list[str] = []
    for line in lines:
        if line.startswith((" ", "\t")) and unfolded:
            unfolded[-1] += line[1:]
        else:
            unfolded.append(line)
    return unfolded


def normalize_ical_content(content: str) -> str:
    """Normalize line endings, unfold continuation lines and upper-case property names.

    Raises:
        ICalFormatError: If content is not a non-empty string
    """
    if not isinstance(content, str) or not content.strip():
        raise ICalFormatError("Calendar content must be a non-empty string")

    unfolded = "\n".join(_unfold(_split_lines(content)))
    return _PROPERTY_NAME.sub(lambda m: m.group(1).upper() + m.group(2), unfolded)


def parse_ical_date(value: str) -> datetime | None:
    """Parse YYYYMMDD or YYYYMMDDTHHMMSS[Z]; timezone markers are dropped"""
    clean = value.strip().replace("Z", "")

    try:
        match = _DATE_TIME.match(clean)
        if match:
            return datetime(*(int(part) for part in match.groups()))

        match = _DATE_ONLY.match(clean)
        if match:
            return datetime(*(int(part) for part in match.groups()))
    except ValueError as e:
        logger.debug(f"Invalid calendar date '{value}': {e}")
        return None

    logger.debug(f"Unrecognized calendar date format '{value}'")
    return None


def parse_ics(content: str) -> list[ICalEvent]:
    """Parse calendar text into events, in file order.

    Args:
        content: Whole-file calendar text

    Returns:
        Events; an event without UID gets a generated one
    """
    events: list[ICalEvent] = []
    current: ICalEvent | None = None
    uid: str | None = None

    for raw_line in _split_lines(normalize_ical_content(content)):
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper == "BEGIN:VEVENT":
            current = ICalEvent(uid="")
            uid = None
            continue

        if upper == "END:VEVENT":
            if current is not None:
                current.uid = uid or f"generated-{uuid.uuid4().hex[:9]}"
                events.append(current)
            current = None
            continue

        if current is None:
            continue

        colon = line.find(":")
        if colon <= 0:
            continue

        name = line[:colon].split(";", 1)[0].upper()
        value = line[colon + 1 :]

        if name == "UID":
            uid = value
        elif name == "SUMMARY":
            current.summary = value
        elif name == "DESCRIPTION":
            current.description = value
        elif name == "CREATED":
            current.created = parse_ical_date(value)
        elif name == "DTSTART":
            current.start = parse_ical_date(value)
        elif name == "DTEND":
            current.end = parse_ical_date(value)
        else:
            current.extra[name.lower()] = value

    logger.debug(f"Read {len(events)} calendar events")
    return events
