"""Configuration schema registry.

Every tunable value of the import pipeline is registered here. Unknown keys
are rejected by the loader.
"""

from __future__ import annotations

from typing import Any

from .types import ConfigKey, ConfigType


def _score_key(key: str, default: int, description: str) -> ConfigKey:
    return ConfigKey(
        key=key,
        config_type=ConfigType.INT,
        default=default,
        description=description,
        min_value=0,
        max_value=100,
    )


CONFIG_SCHEMA: dict[str, ConfigKey] = {
    # =========================================================================
    # MEMBER MATCHING - single-candidate confidence tiers (checked in order)
    # =========================================================================
    "matching.tier.exact": _score_key(
        "matching.tier.exact", 100, "First tier: exactly one candidate at or above this confidence is matched"
    ),
    "matching.tier.strong": _score_key("matching.tier.strong", 95, "Second single-candidate confidence tier"),
    "matching.tier.good": _score_key("matching.tier.good", 92, "Third single-candidate confidence tier"),
    # =========================================================================
    # MEMBER MATCHING - top candidate floor and lead over runner-up
    # =========================================================================
    "matching.floor.common": _score_key(
        "matching.floor.common", 85, "Top candidate floor when the query first name is common"
    ),
    "matching.floor.uncommon": _score_key("matching.floor.uncommon", 80, "Top candidate floor for other first names"),
    "matching.margin.common": _score_key(
        "matching.margin.common", 30, "Required lead over the runner-up for common first names"
    ),
    "matching.margin.uncommon": _score_key(
        "matching.margin.uncommon", 25, "Required lead over the runner-up for other first names"
    ),
    # =========================================================================
    # MEMBER MATCHING - late cascade floors
    # =========================================================================
    "matching.nickname.floor": _score_key(
        "matching.nickname.floor", 85, "Top candidate floor when its first name is a nickname of the query"
    ),
    "matching.last_name_exact.floor": _score_key(
        "matching.last_name_exact.floor", 70, "Top candidate floor when the last name matches exactly"
    ),
    "matching.misspelling.floor": _score_key(
        "matching.misspelling.floor", 65, "Top candidate floor when last names differ by a common misspelling"
    ),
    # =========================================================================
    # ROSTER SEARCH - minimum score for a member to be returned as a candidate
    # =========================================================================
    "roster.min_score.common": _score_key(
        "roster.min_score.common", 40, "Candidates at or below this score are dropped (common first names)"
    ),
    "roster.min_score.uncommon": _score_key(
        "roster.min_score.uncommon", 30, "Candidates at or below this score are dropped (other first names)"
    ),
    # =========================================================================
    # DUPLICATE DETECTION
    # =========================================================================
    "duplicates.strict_mode": ConfigKey(
        key="duplicates.strict_mode",
        config_type=ConfigType.BOOL,
        default=False,
        description="Raise on duplicate lookup failure instead of treating it as 'no duplicate'",
    ),
    # =========================================================================
    # BATCH COMMIT
    # =========================================================================
    "commit.page_size": ConfigKey(
        key="commit.page_size",
        config_type=ConfigType.INT,
        default=200,
        description="Page size used when reading existing requests for a date range",
        min_value=1,
        max_value=1000,
    ),
}


def get_schema_key(key: str) -> ConfigKey | None:
    """Get the schema definition for a config key, or None if unknown."""
    return CONFIG_SCHEMA.get(key)


def get_all_required_keys() -> list[str]:
    """Keys that have no default and must be supplied externally."""
    return [key for key, schema in CONFIG_SCHEMA.items() if schema.required]


def validate_key(key: str, value: Any) -> str | None:
    """
    Validate a value against its schema.

    Returns:
        None if valid, error message if invalid
    """
    schema = CONFIG_SCHEMA.get(key)
    if schema is None:
        return f"Unknown config key: {key}"
    return schema.validate(value)
