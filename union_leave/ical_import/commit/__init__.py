"""Writing reviewed import rows to the request store."""

from __future__ import annotations

from .batch_commit import BatchCommitEngine, QueuedChangeResult
from .import_data import member_for_item, prepare_import_data
from .waitlist_positions import WaitlistAudit, check_waitlist_consistency, validate_waitlist_positions

__all__ = [
    "BatchCommitEngine",
    "QueuedChangeResult",
    "WaitlistAudit",
    "check_waitlist_consistency",
    "member_for_item",
    "prepare_import_data",
    "validate_waitlist_positions",
]
