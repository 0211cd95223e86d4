"""Tests for name comparison helpers"""

from __future__ import annotations

import pytest

from union_leave.ical_import.shared.name_utils import (
    has_doubled_l_variant,
    is_common_misspelling,
    is_initial,
    normalize_for_match,
    phonetic_similarity,
    string_similarity,
)
from union_leave.ical_import.shared.nickname_groups import (
    find_name_variations,
    is_common_first_name,
    is_name_variant,
)


class TestNormalizeForMatch:
    @pytest.mark.parametrize(
        "raw,expected",
        [("O'Brien ", "obrien"), ("Smith-Jones", "smithjones"), ("", ""), (None, ""), ("J.", "j")],
    )
    def test_normalize(self, raw, expected):
        assert normalize_for_match(raw) == expected


class TestSimilarity:
    def test_identical(self):
        assert string_similarity("smith", "SMITH") == 1.0

    def test_empty_sides(self):
        assert string_similarity("", "") == 1.0
        assert string_similarity("smith", "") == 0.0

    def test_one_edit(self):
        assert string_similarity("smith", "smyth") == pytest.approx(0.8)

    def test_phonetic_equal_keys(self):
        assert phonetic_similarity("phillips", "filips") == 1.0

    def test_phonetic_empty(self):
        assert phonetic_similarity("", "smith") == 0.0


class TestMisspellings:
    @pytest.mark.parametrize(
        "a,b",
        [("wilbur", "willbur"), ("smith", "smyth"), ("carl", "karl"), ("philips", "filips"), ("brian", "brain")],
    )
    def test_common_misspellings(self, a, b):
        assert is_common_misspelling(a, b)
        assert is_common_misspelling(b, a)

    @pytest.mark.parametrize("a,b", [("smith", "smith"), ("smith", "jones"), ("", "smith")])
    def test_not_misspellings(self, a, b):
        assert not is_common_misspelling(a, b)

    def test_doubled_l(self):
        assert has_doubled_l_variant("Wilbur", "Willbur")
        assert not has_doubled_l_variant("Hill", "Hill")


class TestNicknames:
    def test_formal_and_variant(self):
        assert is_name_variant("Mike", "michael")
        assert is_name_variant("michael", "Mike")

    def test_two_variants_of_same_name(self):
        assert is_name_variant("bob", "bobby")

    def test_unrelated(self):
        assert not is_name_variant("mike", "bob")

    def test_variations_exclude_self(self):
        assert find_name_variations("Bob") == ["bobby", "rob", "robert"]

    def test_common_first_names(self):
        assert is_common_first_name(" John ")
        assert not is_common_first_name("xavier")


class TestInitial:
    @pytest.mark.parametrize("token,expected", [("J.", True), ("J", True), ("Jo", False), ("J..", False)])
    def test_is_initial(self, token, expected):
        assert is_initial(token) is expected
