"""Confidence thresholds for the member matching cascade"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ...config import ConfigLoader

logger = logging.getLogger(__name__)

DEFAULT_TIERS = (100, 95, 92)
DEFAULT_FLOOR_COMMON = 85
DEFAULT_FLOOR_UNCOMMON = 80
DEFAULT_MARGIN_COMMON = 30
DEFAULT_MARGIN_UNCOMMON = 25
DEFAULT_NICKNAME_FLOOR = 85
DEFAULT_LAST_NAME_EXACT_FLOOR = 70
DEFAULT_MISSPELLING_FLOOR = 65
DEFAULT_MIN_SCORE_COMMON = 40
DEFAULT_MIN_SCORE_UNCOMMON = 30


@dataclass(frozen=True)
class MatchThresholds:
    """All numeric cut-offs used by roster search and the matching cascade"""

    tiers: tuple[int, ...] = DEFAULT_TIERS
    floor_common: int = DEFAULT_FLOOR_COMMON
    floor_uncommon: int = DEFAULT_FLOOR_UNCOMMON
    margin_common: int = DEFAULT_MARGIN_COMMON
    margin_uncommon: int = DEFAULT_MARGIN_UNCOMMON
    nickname_floor: int = DEFAULT_NICKNAME_FLOOR
    last_name_exact_floor: int = DEFAULT_LAST_NAME_EXACT_FLOOR
    misspelling_floor: int = DEFAULT_MISSPELLING_FLOOR
    min_score_common: int = DEFAULT_MIN_SCORE_COMMON
    min_score_uncommon: int = DEFAULT_MIN_SCORE_UNCOMMON

    def floor_for(self, is_common: bool) -> int:
        return self.floor_common if is_common else self.floor_uncommon

    def margin_for(self, is_common: bool) -> int:
        return self.margin_common if is_common else self.margin_uncommon

    def min_score_for(self, is_common: bool) -> int:
        return self.min_score_common if is_common else self.min_score_uncommon

    @classmethod
    def from_config(cls, loader: ConfigLoader | None = None) -> MatchThresholds:
        """Load thresholds from configuration, keeping defaults for unset keys"""
        config = loader or ConfigLoader.get_instance()

        thresholds = cls(
            tiers=(
                config.get_int("matching.tier.exact", DEFAULT_TIERS[0]),
                config.get_int("matching.tier.strong", DEFAULT_TIERS[1]),
                config.get_int("matching.tier.good", DEFAULT_TIERS[2]),
            ),
            floor_common=config.get_int("matching.floor.common", DEFAULT_FLOOR_COMMON),
            floor_uncommon=config.get_int("matching.floor.uncommon", DEFAULT_FLOOR_UNCOMMON),
            margin_common=config.get_int("matching.margin.common", DEFAULT_MARGIN_COMMON),
            margin_uncommon=config.get_int("matching.margin.uncommon", DEFAULT_MARGIN_UNCOMMON),
            nickname_floor=config.get_int("matching.nickname.floor", DEFAULT_NICKNAME_FLOOR),
            last_name_exact_floor=config.get_int("matching.last_name_exact.floor", DEFAULT_LAST_NAME_EXACT_FLOOR),
            misspelling_floor=config.get_int("matching.misspelling.floor", DEFAULT_MISSPELLING_FLOOR),
            min_score_common=config.get_int("roster.min_score.common", DEFAULT_MIN_SCORE_COMMON),
            min_score_uncommon=config.get_int("roster.min_score.uncommon", DEFAULT_MIN_SCORE_UNCOMMON),
        )

        if thresholds != cls():
            logger.info(f"Using configured match thresholds: {thresholds}")
        return thresholds
