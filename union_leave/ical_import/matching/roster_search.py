"""Fuzzy roster search.

Scores every member returned by a loose name query against the calendar
name and returns the plausible ones with a 0-100 confidence, best first.

Scoring tiers:
    100  last name exact and first name exact or a known variant
     98  last names differ by a doubled "ll" and first names are variants
     95  last name exact and first name similar (> 0.5) or a variant
     92  last name phonetically near-identical or a common misspelling,
         first name similar (> 0.6) or a variant
     85  last name phonetically close (> 0.8), first name similar
      *  otherwise a weighted blend of first and last name similarity
"""

from __future__ import annotations

import logging

from ..core.errors import MemberLookupError
from ..core.interfaces import MemberStore
from ..core.models import MatchedMember, Member
from ..shared.name_utils import (
    has_doubled_l_variant,
    is_common_misspelling,
    normalize_for_match,
    phonetic_similarity,
    string_similarity,
)
from ..shared.nickname_groups import is_common_first_name, is_name_variant
from .thresholds import MatchThresholds

logger = logging.getLogger(__name__)

# Blend weights (first, last); common first names carry less information
WEIGHTS_COMMON = (0.2, 0.8)
WEIGHTS_UNCOMMON = (0.3, 0.7)

# Minimum last-name similarity before the blend is scaled down
LAST_NAME_MINIMUM_COMMON = 0.6
LAST_NAME_MINIMUM_UNCOMMON = 0.4


class RosterSearch:
    """Roster lookup backed by a member store"""

    def __init__(self, member_store: MemberStore, thresholds: MatchThresholds | None = None):
        self.member_store = member_store
        self.thresholds = thresholds or MatchThresholds()

    def find_members_by_name(
        self, first_name: str, last_name: str, division_id: str | None = None
    ) -> list[MatchedMember]:
        """Search the roster for a calendar name.

        Args:
            first_name: First name from the calendar (may be empty)
            last_name: Last name from the calendar (may be empty)
            division_id: Restrict to one division when given

        Returns:
            Members scoring above the minimum, sorted by confidence descending

        Raises:
            MemberLookupError: If the member store query fails
        """
        query_first = normalize_for_match(first_name)
        query_last = normalize_for_match(last_name)

        if not query_first and not query_last:
            logger.debug("No usable name for roster search after normalization")
            return []

        try:
            members = self.member_store.search_by_name(first_name.strip(), last_name.strip(), division_id)
        except Exception as e:
            raise MemberLookupError(f"Roster lookup failed for '{first_name} {last_name}': {e}") from e
        if not members:
            logger.debug(f"No roster members found for '{first_name} {last_name}'")
            return []

        is_common = is_common_first_name(query_first)
        min_score = self.thresholds.min_score_for(is_common)

        scored = [
            MatchedMember(member=member, match_confidence=score_member(query_first, query_last, member, is_common))
            for member in members
            if member.first_name and member.last_name
        ]
        scored.sort(key=lambda m: m.match_confidence, reverse=True)
        results = [m for m in scored if m.match_confidence > min_score]

        logger.debug(
            f"Roster search '{first_name} {last_name}': {len(members)} fetched, {len(results)} above {min_score}"
        )
        return results


def score_member(query_first: str, query_last: str, member: Member, is_common: bool) -> int:
    """Confidence (0-100) that a member is the person named in the calendar.

    Args:
        query_first: Normalized first name from the calendar
        query_last: Normalized last name from the calendar
        member: Roster member to score
        is_common: Whether query_first is a common first name
    """
    member_first = normalize_for_match(member.first_name)
    member_last = normalize_for_match(member.last_name)

    if query_last and member_last == query_last:
        if query_first and member_first == query_first:
            return 100
        if is_name_variant(query_first, member_first):
            return 100
        if query_first and (string_similarity(query_first, member_first) > 0.5):
            return 95

    if query_first and query_last and member_first and member_last:
        last_phonetic = phonetic_similarity(query_last, member_last)
        first_is_variant = is_name_variant(query_first, member_first)
        first_matches = first_is_variant or string_similarity(query_first, member_first) > 0.6

        if has_doubled_l_variant(query_last, member_last) and first_is_variant:
            return 98
        if first_matches and (last_phonetic > 0.9 or is_common_misspelling(query_last, member_last)):
            return 92
        if first_matches and last_phonetic > 0.8:
            return 85

    return round(_blended_confidence(query_first, query_last, member_first, member_last, is_common) * 100)


def _blended_confidence(
    query_first: str, query_last: str, member_first: str, member_last: str, is_common: bool
) -> float:
    first_weight, last_weight = WEIGHTS_COMMON if is_common else WEIGHTS_UNCOMMON

    first_conf = string_similarity(query_first, member_first)
    last_conf = string_similarity(query_last, member_last)

    if query_last and member_last:
        last_conf = max(last_conf, phonetic_similarity(query_last, member_last) * 0.9)
        if is_common_misspelling(query_last, member_last):
            last_conf = max(last_conf, 0.85)
        if has_doubled_l_variant(query_last, member_last):
            last_conf = max(last_conf, 0.95)
        if member_last.startswith(query_last) or query_last.startswith(member_last):
            last_conf = max(last_conf, 0.9)

    if query_first and member_first:
        if member_first.startswith(query_first) or query_first.startswith(member_first):
            first_conf = max(first_conf, 0.8)
        if is_name_variant(query_first, member_first):
            first_conf = max(first_conf, 0.9)
        if is_common_misspelling(query_first, member_first):
            first_conf = max(first_conf, 0.85)

    combined = first_conf * first_weight + last_conf * last_weight

    if query_first and query_last:
        minimum = LAST_NAME_MINIMUM_COMMON if is_common else LAST_NAME_MINIMUM_UNCOMMON
        if last_conf < minimum:
            combined *= last_conf / minimum

    return combined
