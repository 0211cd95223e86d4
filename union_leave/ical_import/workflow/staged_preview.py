"""The staged import preview aggregate.

A StagedImportPreview is never modified in place. Every workflow operation
takes a snapshot and returns a new one; nested collections are tuples,
frozensets and read-only mappings so an older snapshot cannot be changed
through a shared reference.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, TypeVar

from ..core.errors import UnknownItemError
from ..core.models import (
    ConflictAction,
    DbConflict,
    DuplicateResolution,
    ImportPreviewItem,
    ImportStage,
    MatchStatus,
    Member,
    QueuedDbChange,
    RequestStatus,
)

K = TypeVar("K")
V = TypeVar("V")


def frozen_map(values: Mapping[K, V] | Iterable[tuple[K, V]] | None = None) -> Mapping[K, V]:
    """Read-only copy of a mapping"""
    return MappingProxyType(dict(values or {}))


def map_with(values: Mapping[K, V], key: K, value: V) -> Mapping[K, V]:
    """Copy of a read-only mapping with one entry set"""
    updated = dict(values)
    updated[key] = value
    return MappingProxyType(updated)


def map_without(values: Mapping[K, V], key: K) -> Mapping[K, V]:
    """Copy of a read-only mapping with one entry removed"""
    updated = dict(values)
    updated.pop(key, None)
    return MappingProxyType(updated)


@dataclass(frozen=True)
class UnmatchedStageData:
    """Assignments and skips for items the matcher could not settle"""

    unmatched_item_ids: tuple[str, ...] = ()
    resolved_assignments: Mapping[str, Member] = field(default_factory=frozen_map)
    skipped_items: frozenset[str] = frozenset()
    is_complete: bool = False


@dataclass(frozen=True)
class DuplicatesStageData:
    """Decisions for items that already exist in the store"""

    duplicate_item_ids: tuple[str, ...] = ()
    resolutions: Mapping[str, DuplicateResolution] = field(default_factory=frozen_map)
    is_complete: bool = False


@dataclass(frozen=True)
class DateCapacity:
    """Slot usage on one calendar date covered by the import"""

    request_date: date
    current_allotment: int
    existing_requests: int
    import_item_ids: tuple[str, ...] = ()
    max_waitlist_position: int = 0

    @property
    def import_count(self) -> int:
        return len(self.import_item_ids)

    @property
    def over_allotment_count(self) -> int:
        return max(0, self.existing_requests + self.import_count - self.current_allotment)

    @property
    def is_over_allotted(self) -> bool:
        return self.over_allotment_count > 0

    @property
    def suggested_allotment(self) -> int:
        """Allotment that would approve every imported request"""
        return self.existing_requests + self.import_count


@dataclass(frozen=True)
class OverAllotmentStageData:
    """Capacity figures and the administrator's decisions per over-allotted date"""

    date_capacity: tuple[DateCapacity, ...] = ()
    allotment_adjustments: Mapping[date, int] = field(default_factory=frozen_map)
    request_ordering: Mapping[date, tuple[str, ...]] = field(default_factory=frozen_map)
    applied_change_ids: frozenset[str] = frozenset()
    is_analyzed: bool = False
    is_complete: bool = False

    @property
    def over_allotted_dates(self) -> tuple[DateCapacity, ...]:
        return tuple(c for c in self.date_capacity if c.is_over_allotted)

    def capacity_for(self, request_date: date) -> DateCapacity | None:
        for capacity in self.date_capacity:
            if capacity.request_date == request_date:
                return capacity
        return None

    def effective_allotment(self, capacity: DateCapacity) -> int:
        return self.allotment_adjustments.get(capacity.request_date, capacity.current_allotment)


@dataclass(frozen=True)
class DbReconciliationStageData:
    """Conflicts with stored requests and the decisions recorded against them"""

    conflicts: tuple[DbConflict, ...] = ()
    reviewed_conflicts: frozenset[str] = frozenset()
    conflict_actions: Mapping[str, ConflictAction] = field(default_factory=frozen_map)
    queued_changes: tuple[QueuedDbChange, ...] = ()
    is_fetched: bool = False
    is_complete: bool = False


@dataclass(frozen=True)
class FinalReviewStageData:
    is_ready_for_import: bool = False
    is_complete: bool = False


@dataclass(frozen=True)
class StageData:
    unmatched: UnmatchedStageData = field(default_factory=UnmatchedStageData)
    duplicates: DuplicatesStageData = field(default_factory=DuplicatesStageData)
    over_allotment: OverAllotmentStageData = field(default_factory=OverAllotmentStageData)
    db_reconciliation: DbReconciliationStageData = field(default_factory=DbReconciliationStageData)
    final_review: FinalReviewStageData = field(default_factory=FinalReviewStageData)

    def for_stage(self, stage: ImportStage) -> Any:
        return getattr(self, stage.value)


@dataclass(frozen=True)
class ProgressState:
    current_stage: ImportStage = ImportStage.UNMATCHED
    completed_stages: tuple[ImportStage, ...] = ()
    can_progress: bool = False
    stage_data: StageData = field(default_factory=StageData)


@dataclass(frozen=True)
class StagedImportPreview:
    """Root aggregate of the reconciliation workflow"""

    original_items: tuple[ImportPreviewItem, ...]
    calendar_id: str
    division_id: str | None
    progress_state: ProgressState
    last_updated: datetime

    @property
    def current_stage(self) -> ImportStage:
        return self.progress_state.current_stage

    @property
    def stage_data(self) -> StageData:
        return self.progress_state.stage_data

    def item(self, item_id: str) -> ImportPreviewItem:
        for item in self.original_items:
            if item.item_id == item_id:
                return item
        raise UnknownItemError(f"No preview item with id {item_id}")

    def index_of(self, item_id: str) -> int:
        """Position of an item in original_items"""
        for index, item in enumerate(self.original_items):
            if item.item_id == item_id:
                return index
        raise UnknownItemError(f"No preview item with id {item_id}")

    def effective_member(self, item_id: str) -> Member | None:
        """The assigned member if the administrator picked one, else the matched member"""
        assigned = self.stage_data.unmatched.resolved_assignments.get(item_id)
        if assigned is not None:
            return assigned
        item = self.item(item_id)
        return item.match.member if item.match.is_matched else None

    def is_skipped(self, item_id: str) -> bool:
        """Skipped while resolving members or as a duplicate"""
        data = self.stage_data
        if item_id in data.unmatched.skipped_items:
            return True
        return data.duplicates.resolutions.get(item_id) == DuplicateResolution.SKIP

    def active_items(self) -> list[tuple[ImportPreviewItem, Member]]:
        """Items that will be imported, in source order, with their member"""
        active = []
        for item in self.original_items:
            if self.is_skipped(item.item_id):
                continue
            member = self.effective_member(item.item_id)
            if member is not None:
                active.append((item, member))
        return active

    def skipped_duplicates(self) -> list[tuple[ImportPreviewItem, Member]]:
        """Duplicates left out of the import; their stored rows are still in the calendar"""
        resolutions = self.stage_data.duplicates.resolutions
        skipped = []
        for item in self.original_items:
            if resolutions.get(item.item_id) != DuplicateResolution.SKIP:
                continue
            member = self.effective_member(item.item_id)
            if member is not None:
                skipped.append((item, member))
        return skipped

    def skipped_items(self) -> list[ImportPreviewItem]:
        return [item for item in self.original_items if self.is_skipped(item.item_id)]

    def approved_import_ids(self, request_date: date) -> tuple[str, ...]:
        return tuple(
            item.item_id
            for item, _ in self.active_items()
            if item.request_date == request_date and item.status == RequestStatus.APPROVED
        )


def create_staged_preview(
    items: Iterable[ImportPreviewItem],
    calendar_id: str,
    division_id: str | None = None,
    now: datetime | None = None,
) -> StagedImportPreview:
    """Start a workflow over freshly built preview items"""
    original_items = tuple(items)
    unmatched_ids = tuple(item.item_id for item in original_items if item.match.status != MatchStatus.MATCHED)
    duplicate_ids = tuple(item.item_id for item in original_items if item.is_potential_duplicate)

    stage_data = StageData(
        unmatched=UnmatchedStageData(unmatched_item_ids=unmatched_ids, is_complete=not unmatched_ids),
        duplicates=DuplicatesStageData(duplicate_item_ids=duplicate_ids, is_complete=not duplicate_ids),
    )
    return StagedImportPreview(
        original_items=original_items,
        calendar_id=calendar_id,
        division_id=division_id,
        progress_state=ProgressState(
            current_stage=ImportStage.UNMATCHED,
            can_progress=not unmatched_ids,
            stage_data=stage_data,
        ),
        last_updated=now or datetime.now(),
    )


def with_stage_data(preview: StagedImportPreview, stage: ImportStage, **changes: Any) -> StagedImportPreview:
    """New snapshot with fields of one stage's data replaced"""
    stage_data = preview.stage_data
    updated = replace(stage_data.for_stage(stage), **changes)
    return with_progress(preview, stage_data=replace(stage_data, **{stage.value: updated}))


def with_progress(preview: StagedImportPreview, **changes: Any) -> StagedImportPreview:
    """New snapshot with progress state fields replaced"""
    return replace(
        preview,
        progress_state=replace(preview.progress_state, **changes),
        last_updated=datetime.now(),
    )
