"""First-name variant table and common-name list for roster matching.

Variant groups are keyed by the formal name; two names are variants of each
other when one is the formal name and the other is listed under it, or both
are listed under the same formal name."""

from __future__ import annotations

NAME_VARIANTS: dict[str, tuple[str, ...]] = {
    "michael": ("mike", "mick", "mickey"),
    "robert": ("rob", "bob", "bobby"),
    "william": ("will", "bill", "billy"),
    "james": ("jim", "jimmy"),
    "thomas": ("tom", "tommy"),
    "joseph": ("joe", "joey"),
    "daniel": ("dan", "danny"),
    "richard": ("rick", "ricky", "dick"),
    "nicholas": ("nick", "nicky"),
    "anthony": ("tony",),
    "donald": ("don", "donnie"),
    "edward": ("ed", "eddie", "ned"),
    "christopher": ("chris",),
    "matthew": ("matt",),
    "steven": ("steve",),
    "alexander": ("alex",),
    "david": ("dave",),
    "jonathan": ("jon", "john"),
    "samuel": ("sam",),
    "patrick": ("pat",),
    "timothy": ("tim",),
    "kenneth": ("ken", "kenny"),
    "lawrence": ("larry",),
    "charles": ("chuck", "charlie"),
    "benjamin": ("ben",),
    "nathan": ("nate", "nat"),
}

# First names shared by many members; matches on them need a wider lead
COMMON_FIRST_NAMES: frozenset[str] = frozenset(
    {
        "mike",
        "michael",
        "john",
        "johnny",
        "dave",
        "david",
        "bob",
        "robert",
        "bill",
        "william",
        "jim",
        "james",
        "tom",
        "thomas",
        "joe",
        "joseph",
        "dan",
        "daniel",
        "steve",
        "steven",
        "alex",
        "alexander",
        "matt",
        "matthew",
        "chris",
        "christopher",
        "pat",
        "patrick",
        "nick",
        "nicholas",
        "sam",
        "samuel",
        "tim",
        "timothy",
        "rick",
        "richard",
        "tony",
        "anthony",
        "don",
        "donald",
        "nate",
        "nathan",
    }
)


def is_common_first_name(name: str) -> bool:
    return name.strip().lower() in COMMON_FIRST_NAMES


def is_name_variant(name1: str, name2: str) -> bool:
    """Check whether two first names are the same name or known variants.

    Args:
        name1: First name to compare
        name2: First name to compare

    Returns:
        True for identical names (case-insensitive) or a known variant pair
    """
    n1 = name1.strip().lower()
    n2 = name2.strip().lower()

    if n1 == n2:
        return True

    for formal, variants in NAME_VARIANTS.items():
        if n1 == formal and n2 in variants:
            return True
        if n2 == formal and n1 in variants:
            return True
        if n1 in variants and n2 in variants:
            return True

    return False


def find_name_variations(name: str) -> list[str]:
    """All names considered variants of the given first name (excluding itself)"""
    name_lower = name.strip().lower()
    variations: set[str] = set()

    for formal, variants in NAME_VARIANTS.items():
        group = {formal, *variants}
        if name_lower in group:
            variations.update(group)

    variations.discard(name_lower)
    return sorted(variations)
