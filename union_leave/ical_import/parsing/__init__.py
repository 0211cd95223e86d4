"""Calendar export parsing"""

from .calendar_parser import parse_ical_for_requests
from .ical_reader import ICalEvent, normalize_ical_content, parse_ical_date, parse_ics
from .summary_parser import parse_summary

__all__ = [
    "ICalEvent",
    "normalize_ical_content",
    "parse_ical_date",
    "parse_ical_for_requests",
    "parse_ics",
    "parse_summary",
]
