"""Batch commit of import rows.

One transactional bulk insert is tried first. If it fails for any reason
every row is inserted on its own, in order, and failures are recorded by
row index so a retry can target just the failed subset.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from ..core.errors import WaitlistPositionError
from ..core.interfaces import RequestStore
from ..core.models import BatchImportResult, FailedItem, ImportRow, QueuedDbChange
from .waitlist_positions import validate_waitlist_positions

logger = logging.getLogger(__name__)

NO_SELECTION_MESSAGE = "No items selected for import"


@dataclass
class QueuedChangeResult:
    """Outcome of applying queued status changes"""

    applied_ids: list[str] = field(default_factory=list)
    failed_items: list[FailedItem] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_items


class BatchCommitEngine:
    """Writes prepared rows and queued changes to the request store"""

    def __init__(self, request_store: RequestStore):
        self.request_store = request_store

    def insert_batch(self, rows: Sequence[ImportRow]) -> BatchImportResult:
        """Insert rows, falling back to one insert per row when the bulk insert fails.

        Returns:
            BatchImportResult with inserted_count + failed_count == len(rows)
        """
        if not rows:
            return BatchImportResult(success=False, error_messages=[NO_SELECTION_MESSAGE])

        records = [row.to_record() for row in rows]
        try:
            ids = self.request_store.insert_many(records)
        except Exception as e:
            logger.warning(f"Bulk insert of {len(records)} rows failed, inserting one at a time: {e}")
        else:
            logger.info(f"Inserted {len(ids)} requests in one batch")
            return BatchImportResult(success=True, inserted_count=len(records), inserted_ids=list(ids))

        result = BatchImportResult(success=False)
        for index, record in enumerate(records):
            try:
                result.inserted_ids.append(self.request_store.insert_one(record))
                result.inserted_count += 1
            except Exception as e:
                logger.warning(f"Row {index} failed: {e}")
                result.failed_items.append(FailedItem(index=index, error=str(e)))
                result.error_messages.append(f"Row {index}: {e}")
                result.failed_count += 1

        result.success = result.inserted_count > 0
        logger.info(f"Row-by-row insert: {result.inserted_count} inserted, {result.failed_count} failed")
        return result

    def insert_batch_with_waitlist_positions(self, rows: Sequence[ImportRow]) -> BatchImportResult:
        """Validate waitlist positions, then insert.

        Any position collision aborts the whole batch before anything is written.
        """
        if not rows:
            return BatchImportResult(success=False, error_messages=[NO_SELECTION_MESSAGE])

        aborted = self.check_waitlist_positions(rows)
        if aborted is not None:
            return aborted
        return self.insert_batch(rows)

    def check_waitlist_positions(self, rows: Sequence[ImportRow]) -> BatchImportResult | None:
        """Return the aborted result when positions collide, None when the rows may be written"""
        try:
            validate_waitlist_positions(rows, self.request_store)
        except WaitlistPositionError as e:
            logger.error(f"Import aborted, {len(e.errors)} waitlist position conflicts")
            for message in e.errors:
                logger.error(f"  {message}")
            return BatchImportResult(success=False, failed_count=len(rows), error_messages=list(e.errors))
        return None

    def apply_queued_changes(
        self, changes: Sequence[QueuedDbChange], admin_id: str | None = None
    ) -> QueuedChangeResult:
        """Apply status changes recorded during reconciliation.

        A failed update is recorded by position and does not stop the rest.
        """
        result = QueuedChangeResult()
        actioned_at = datetime.now().isoformat()

        for index, change in enumerate(changes):
            fields = {
                "actioned_by": change.admin_id or admin_id,
                "actioned_at": actioned_at,
                "metadata": {
                    "import_reconciliation": {
                        "previous_status": change.current_status.value,
                        "reason": change.admin_reason,
                        "queued_at": change.timestamp.isoformat(),
                    }
                },
            }
            try:
                self.request_store.update_status(change.request_id, change.new_status, fields)
                result.applied_ids.append(change.request_id)
            except Exception as e:
                logger.warning(f"Could not apply change to request {change.request_id}: {e}")
                result.failed_items.append(FailedItem(index=index, error=str(e)))

        logger.info(f"Applied {len(result.applied_ids)} of {len(changes)} queued changes")
        return result
