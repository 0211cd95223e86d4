"""Name normalization and comparison helpers.

Similarity scores are 0.0-1.0. String similarity is normalized Levenshtein
(1 - distance / longer length) via rapidfuzz."""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

# Letter pairs commonly confused when names are typed from memory
COMMON_MISSPELLINGS: tuple[tuple[str, str], ...] = (
    ("c", "k"),
    ("s", "c"),
    ("y", "i"),
    ("f", "ph"),
    ("n", "nn"),
    ("l", "ll"),
    ("m", "mm"),
    ("t", "tt"),
    ("i", "e"),
    ("a", "e"),
    ("a", "o"),
    ("e", "a"),
    ("ks", "x"),
    ("z", "s"),
    ("j", "g"),
    ("w", "wh"),
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_for_match(name: str | None) -> str:
    """Lowercase and strip everything but letters and digits.

    "O'Brien " -> "obrien", "Smith-Jones" -> "smithjones"
    """
    if not name:
        return ""
    return _NON_ALNUM.sub("", name.strip().lower())


def string_similarity(s1: str, s2: str) -> float:
    """Normalized Levenshtein similarity between two strings"""
    if not s1 and not s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    return Levenshtein.normalized_similarity(s1.lower(), s2.lower())


def phonetic_key(text: str) -> str:
    """Simplified phonetic key for comparing similar-sounding surnames.

    Collapses doubled consonants and vowel clusters, folds common consonant
    digraphs, and reduces every remaining vowel to "A".
    """
    if not text:
        return ""

    key = re.sub(r"[^a-z]", "", text.lower())
    key = key.replace("ph", "f").replace("ck", "k")
    key = re.sub(r"([bcdfghjklmnpqrstvwxz])\1+", r"\1", key)
    key = re.sub(r"([aeiou])[aeiou]+", r"\1", key)

    replacements = [
        (r"kn|gn|pn|ae|wr", "n"),
        (r"wh", "w"),
        (r"x", "ks"),
        (r"mb$", "m"),
        (r"ght", "t"),
        (r"dg|tch", "j"),
        (r"([^c])ia", r"\1ya"),
        (r"([^c])io", r"\1yo"),
        (r"([^c])iu", r"\1yu"),
        (r"ow", "aw"),
        (r"ee|ea|ey|ei|ie", "e"),
        (r"oa|oe|ou|oo|ough", "o"),
        (r"ai|ay|ae", "a"),
        (r"[aeiou]", "A"),
        (r"sh|sch|ch", "S"),
        (r"th", "T"),
    ]
    for pattern, repl in replacements:
        key = re.sub(pattern, repl, key)

    return key


def phonetic_similarity(s1: str, s2: str) -> float:
    """1.0 for identical phonetic keys, else string similarity of the keys"""
    if not s1 or not s2:
        return 0.0

    key1 = phonetic_key(s1)
    key2 = phonetic_key(s2)
    if key1 == key2:
        return 1.0
    return string_similarity(key1, key2)


def has_doubled_l_variant(s1: str, s2: str) -> bool:
    """Wilbur / Willbur: the names differ only by one doubled "ll"."""
    a, b = s1.lower(), s2.lower()
    if a == b:
        return False
    return a.replace("ll", "l", 1) == b or b.replace("ll", "l", 1) == a


def is_common_misspelling(s1: str, s2: str) -> bool:
    """Check whether two names differ by one common misspelling.

    Covers a single doubled "ll", one substitution from COMMON_MISSPELLINGS
    applied at its first occurrence in either direction, or one swap of
    adjacent letters.
    """
    a, b = s1.lower(), s2.lower()
    if not a or not b or a == b:
        return False

    if has_doubled_l_variant(a, b):
        return True

    for x, y in COMMON_MISSPELLINGS:
        if a.replace(x, y, 1) == b or b.replace(x, y, 1) == a or a.replace(y, x, 1) == b or b.replace(y, x, 1) == a:
            return True

    if len(a) == len(b):
        for i in range(len(a) - 1):
            if a[:i] + a[i + 1] + a[i] + a[i + 2 :] == b:
                return True

    return False


def is_initial(token: str) -> bool:
    """A single letter, optionally followed by a period ("J." or "J")"""
    return bool(re.fullmatch(r"[A-Za-z]\.?", token))
