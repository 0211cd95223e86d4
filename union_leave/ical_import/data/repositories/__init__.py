"""Repositories over the PocketBase collections used by the import.

Provides database access for members, leave requests and allotments."""

from __future__ import annotations

from .allotment_repository import AllotmentRepository
from .member_repository import MemberRepository
from .request_repository import RequestRepository

__all__ = [
    "AllotmentRepository",
    "MemberRepository",
    "RequestRepository",
]
