"""Tests for roster search scoring"""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from factories import make_member

from union_leave.ical_import.core.errors import MemberLookupError
from union_leave.ical_import.matching import RosterSearch
from union_leave.ical_import.matching.roster_search import score_member


def make_search(members=None, error: Exception | None = None) -> RosterSearch:
    store = Mock()
    if error is not None:
        store.search_by_name.side_effect = error
    else:
        store.search_by_name.return_value = members or []
    return RosterSearch(store)


class TestScoreMember:
    def test_exact_name(self):
        assert score_member("john", "smith", make_member(first_name="John", last_name="Smith"), True) == 100

    def test_nickname_with_exact_last_name(self):
        assert score_member("mike", "smith", make_member(first_name="Michael", last_name="Smith"), True) == 100

    def test_similar_first_with_exact_last_name(self):
        assert score_member("jonn", "smith", make_member(first_name="John", last_name="Smith"), False) == 95

    def test_doubled_l_last_name_with_nickname(self):
        assert score_member("bill", "wilbur", make_member(first_name="William", last_name="Willbur"), True) == 98

    def test_misspelled_last_name(self):
        assert score_member("john", "smyth", make_member(first_name="John", last_name="Smith"), True) == 92

    def test_unrelated_name_scores_low(self):
        score = score_member("xavier", "quinn", make_member(first_name="Bob", last_name="Jones"), False)

        assert score < 30


class TestFindMembersByName:
    def test_results_sorted_and_scored(self):
        exact = make_member("m1", "John", "Smith")
        close = make_member("m2", "Jon", "Smyth")
        search = make_search([close, exact])

        results = search.find_members_by_name("John", "Smith")

        assert [r.member for r in results][0] == exact
        assert results[0].match_confidence == 100
        assert results[0].match_confidence >= results[-1].match_confidence

    def test_low_scores_filtered(self):
        search = make_search([make_member("m1", "Bob", "Jones")])

        assert search.find_members_by_name("Xavier", "Quinn") == []

    def test_members_without_names_ignored(self):
        search = make_search([make_member("m1", "", "Smith")])

        assert search.find_members_by_name("John", "Smith") == []

    def test_blank_query_skips_store(self):
        search = make_search([make_member()])

        assert search.find_members_by_name(" ", "--") == []
        search.member_store.search_by_name.assert_not_called()

    def test_store_receives_trimmed_names_and_division(self):
        search = make_search([])

        search.find_members_by_name(" John ", "Smith ", "div-2")

        search.member_store.search_by_name.assert_called_once_with("John", "Smith", "div-2")

    def test_store_error_raises_lookup_error(self):
        search = make_search(error=RuntimeError("timeout"))

        with pytest.raises(MemberLookupError, match="timeout"):
            search.find_members_by_name("John", "Smith")
