"""Staged reconciliation workflow.

Stages run in the order unmatched, duplicates, over_allotment,
db_reconciliation, final_review. The pure functions here take a
StagedImportPreview and return a new one; ImportSession adds the steps
that read from or write to the stores.
"""

from __future__ import annotations

from .capacity import (
    AllotmentImpactAnalysis,
    DateImpact,
    analyze_over_allotment,
    analyze_queued_db_changes_impact,
    build_date_capacity,
    set_over_allotment_analysis,
)
from .final_review import AllotmentChange, FinalReview, FinalReviewEntry, build_final_review
from .import_session import CommitOutcome, ImportSession
from .stage_actions import (
    add_duplicate_items,
    assign_member,
    clear_over_allotment_decision,
    record_conflict_action,
    resolve_duplicate,
    set_allotment_adjustment,
    set_db_conflicts,
    set_request_ordering,
    skip_item,
    unskip_item,
)
from .stage_rules import (
    ProgressMetrics,
    advance_to_next_stage,
    calculate_progress_metrics,
    is_stage_complete,
    proceed_to_final_review,
    return_to_over_allotment,
    update_stage_completion,
)
from .staged_preview import DateCapacity, StagedImportPreview, create_staged_preview

__all__ = [
    "AllotmentChange",
    "AllotmentImpactAnalysis",
    "CommitOutcome",
    "DateCapacity",
    "DateImpact",
    "FinalReview",
    "FinalReviewEntry",
    "ImportSession",
    "ProgressMetrics",
    "StagedImportPreview",
    "add_duplicate_items",
    "advance_to_next_stage",
    "analyze_over_allotment",
    "analyze_queued_db_changes_impact",
    "assign_member",
    "build_date_capacity",
    "build_final_review",
    "calculate_progress_metrics",
    "clear_over_allotment_decision",
    "create_staged_preview",
    "is_stage_complete",
    "proceed_to_final_review",
    "record_conflict_action",
    "resolve_duplicate",
    "return_to_over_allotment",
    "set_allotment_adjustment",
    "set_db_conflicts",
    "set_over_allotment_analysis",
    "set_request_ordering",
    "skip_item",
    "unskip_item",
    "update_stage_completion",
]
