"""Duplicate and stored-request conflict detection"""

from .db_conflict_detector import DbConflictDetector, DbConflictResult
from .duplicate_detector import DuplicateDetector

__all__ = ["DbConflictDetector", "DbConflictResult", "DuplicateDetector"]
