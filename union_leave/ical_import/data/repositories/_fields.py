"""Helpers shared by the repositories."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any


def escape_filter_value(value: str) -> str:
    """Escape a string for a PocketBase filter (O'Brien -> O''Brien)."""
    return value.replace("'", "''")


def get_field(record: Any, name: str, default: Any = None) -> Any:
    """Read a field from a record object or a plain dict"""
    if hasattr(record, name):
        return getattr(record, name)
    if isinstance(record, dict):
        return record.get(name, default)
    return default


def parse_date_field(value: Any) -> date | None:
    """PocketBase date fields arrive as 'YYYY-MM-DD' or 'YYYY-MM-DD HH:MM:SS.sssZ'"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_datetime_field(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).replace(" ", "T").rstrip("Z")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
