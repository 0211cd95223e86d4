"""Resolve a calendar name to a single member where it is safe to do so.

The cascade prefers automatic resolution, but only at confidence levels
that do not risk assigning one member's leave to another. Anything it
cannot settle is returned as multiple_matches for an administrator.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.interfaces import RosterLookup
from ..core.models import MatchedMember, MatchResult
from ..shared.name_utils import is_common_misspelling, normalize_for_match
from ..shared.nickname_groups import is_common_first_name, is_name_variant
from .thresholds import MatchThresholds

logger = logging.getLogger(__name__)


class MemberMatcher:
    """Applies the matching cascade to roster search results"""

    def __init__(self, roster: RosterLookup, thresholds: MatchThresholds | None = None):
        self.roster = roster
        self.thresholds = thresholds or MatchThresholds()
        self.warnings: list[str] = []
        self._stats = {
            "lookups": 0,
            "matched": 0,
            "multiple_matches": 0,
            "unmatched": 0,
            "lookup_errors": 0,
        }

    def find_matching_member(self, first_name: str, last_name: str, division_id: str | None = None) -> MatchResult:
        """Match a calendar name against the roster.

        A failed roster lookup degrades to unmatched and is recorded in
        ``warnings``; it never raises.
        """
        self._stats["lookups"] += 1

        if not first_name.strip() and not last_name.strip():
            logger.warning("Empty name provided for member matching")
            return self._record(MatchResult.unmatched())

        try:
            candidates = self.roster.find_members_by_name(first_name, last_name, division_id)
        except Exception as e:
            self._stats["lookup_errors"] += 1
            message = f"Member lookup failed for '{first_name} {last_name}': {e}"
            logger.warning(message)
            self.warnings.append(message)
            return self._record(MatchResult.unmatched())

        result = self.resolve(first_name, last_name, candidates)
        logger.debug(
            f"'{first_name} {last_name}' -> {result.status.value} "
            f"({len(candidates)} candidates, division {division_id or 'all'})"
        )
        return self._record(result)

    def resolve(self, first_name: str, last_name: str, candidates: list[MatchedMember]) -> MatchResult:
        """Apply the cascade to already-scored candidates.

        Args:
            first_name: Calendar first name (may be empty)
            last_name: Calendar last name (may be empty)
            candidates: Roster search results, any order

        Returns:
            MatchResult
        """
        if not candidates:
            return MatchResult.unmatched()

        ranked = sorted(candidates, key=lambda c: c.match_confidence, reverse=True)
        t = self.thresholds

        # Exactly one candidate at or above a confidence tier
        for tier in t.tiers:
            at_tier = [c for c in ranked if c.match_confidence >= tier]
            if len(at_tier) == 1:
                return MatchResult.matched(at_tier[0].member)

        if len(ranked) == 1:
            return MatchResult.matched(ranked[0].member)

        top, runner_up = ranked[0], ranked[1]
        query_first = normalize_for_match(first_name)
        query_last = normalize_for_match(last_name)
        is_common = is_common_first_name(query_first)

        # Clear leader
        if (
            top.match_confidence >= t.floor_for(is_common)
            and top.match_confidence - runner_up.match_confidence > t.margin_for(is_common)
        ):
            return MatchResult.matched(top.member)

        top_first = normalize_for_match(top.member.first_name)
        top_last = normalize_for_match(top.member.last_name)

        # Same person under a nickname
        if top.match_confidence >= t.nickname_floor and query_first and is_name_variant(query_first, top_first):
            return MatchResult.matched(top.member)

        # Full name given and last name is exact
        if (
            query_first
            and query_last
            and top.match_confidence >= t.last_name_exact_floor
            and top.member.last_name.strip().lower() == last_name.strip().lower()
        ):
            return MatchResult.matched(top.member)

        # Last name off by a common misspelling
        if top.match_confidence >= t.misspelling_floor and query_last and is_common_misspelling(query_last, top_last):
            return MatchResult.matched(top.member)

        return MatchResult.multiple([c.member for c in ranked])

    def _record(self, result: MatchResult) -> MatchResult:
        self._stats[result.status.value] += 1
        return result

    def get_stats(self) -> dict[str, Any]:
        """Get matching statistics"""
        return self._stats.copy()
