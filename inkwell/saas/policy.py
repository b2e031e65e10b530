"""Monthly allowance per subscription tier and feature.

Allowance sentinels:
- ``NO_ACCESS`` (0): the tier cannot use the feature at all
- ``UNLIMITED`` (-1): no monthly cap
"""

from __future__ import annotations

from inkwell.core.constants import NO_ACCESS, UNLIMITED
from inkwell.core.types import FeatureKey, Tier

TIER_ALLOWANCES: dict[Tier, dict[FeatureKey, int]] = {
    Tier.FREE: {
        FeatureKey.STORY_GENERATION: 1,
        FeatureKey.CHAPTER_GENERATION: NO_ACCESS,
        FeatureKey.CHARACTER_GENERATION: 3,
        FeatureKey.COVER_GENERATION: NO_ACCESS,
        FeatureKey.AI_CHAT: 10,
        FeatureKey.EXPORT_PDF: NO_ACCESS,
        FeatureKey.EXPORT_DOCX: NO_ACCESS,
    },
    Tier.HOBBY: {
        FeatureKey.STORY_GENERATION: 3,
        FeatureKey.CHAPTER_GENERATION: 5,
        FeatureKey.CHARACTER_GENERATION: 10,
        FeatureKey.COVER_GENERATION: NO_ACCESS,
        FeatureKey.AI_CHAT: 50,
        FeatureKey.EXPORT_PDF: NO_ACCESS,
        FeatureKey.EXPORT_DOCX: NO_ACCESS,
    },
    Tier.AMADOR: {
        FeatureKey.STORY_GENERATION: 10,
        FeatureKey.CHAPTER_GENERATION: 30,
        FeatureKey.CHARACTER_GENERATION: 50,
        FeatureKey.COVER_GENERATION: 5,
        FeatureKey.AI_CHAT: 200,
        FeatureKey.EXPORT_PDF: 10,
        FeatureKey.EXPORT_DOCX: 10,
    },
    Tier.PROFISSIONAL: {feature: UNLIMITED for feature in FeatureKey},
}


def validate_table(table: dict[Tier, dict[FeatureKey, int]]) -> None:
    """Raise ValueError unless every Tier x FeatureKey pair has an allowance >= -1."""
    for tier in Tier:
        row = table.get(tier)
        if row is None:
            msg = f"allowance table has no row for tier {tier.value}"
            raise ValueError(msg)
        missing = set(FeatureKey) - set(row)
        if missing:
            msg = f"tier {tier.value} missing features: {sorted(f.value for f in missing)}"
            raise ValueError(msg)
        for feature, allowance in row.items():
            if allowance < UNLIMITED:
                msg = f"invalid allowance {allowance} for {tier.value}/{feature.value}"
                raise ValueError(msg)


validate_table(TIER_ALLOWANCES)


def is_unlimited(allowance: int) -> bool:
    return allowance == UNLIMITED


class TierPolicy:
    """Pure lookup from (tier, feature) to monthly allowance."""

    def __init__(self, table: dict[Tier, dict[FeatureKey, int]] | None = None) -> None:
        if table is not None:
            validate_table(table)
        self._table = table if table is not None else TIER_ALLOWANCES

    def allowance_for(self, tier: Tier | str | None, feature: FeatureKey) -> int:
        """Monthly allowance for the pair.

        Unknown tiers are treated as FREE; a feature missing from the row
        yields NO_ACCESS.
        """
        row = self._table.get(Tier.parse(tier)) or self._table.get(Tier.FREE, {})
        return row.get(feature, NO_ACCESS)

    def allowances_for(self, tier: Tier | str | None) -> dict[FeatureKey, int]:
        """Every feature's allowance for the tier, in FeatureKey order."""
        return {feature: self.allowance_for(tier, feature) for feature in FeatureKey}
