"""System-wide shared types — the single source of truth for quota data structures."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from inkwell.core.constants import (
    FEATURE_CHAPTER,
    FEATURE_CHARACTER,
    FEATURE_CHAT,
    FEATURE_COVER,
    FEATURE_EXPORT_DOCX,
    FEATURE_EXPORT_PDF,
    FEATURE_STORY,
    TIER_AMADOR,
    TIER_FREE,
    TIER_HOBBY,
    TIER_PROFISSIONAL,
)
from inkwell.core.exceptions import UnknownFeatureError


# ── Enums ────────────────────────────────────────────────────────

class Tier(str, Enum):
    FREE = TIER_FREE
    HOBBY = TIER_HOBBY
    AMADOR = TIER_AMADOR
    PROFISSIONAL = TIER_PROFISSIONAL

    @classmethod
    def parse(cls, value: str | Tier | None) -> Tier:
        """Resolve a tier name, falling back to FREE for anything unrecognized."""
        if isinstance(value, Tier):
            return value
        if not value:
            return cls.FREE
        lowered = value.strip().lower()
        for tier in cls:
            if tier.value.lower() == lowered:
                return tier
        return cls.FREE


class FeatureKey(str, Enum):
    STORY_GENERATION = FEATURE_STORY
    CHAPTER_GENERATION = FEATURE_CHAPTER
    CHARACTER_GENERATION = FEATURE_CHARACTER
    COVER_GENERATION = FEATURE_COVER
    AI_CHAT = FEATURE_CHAT
    EXPORT_PDF = FEATURE_EXPORT_PDF
    EXPORT_DOCX = FEATURE_EXPORT_DOCX

    @classmethod
    def parse(cls, value: str | FeatureKey) -> FeatureKey:
        """Resolve a feature key or raise UnknownFeatureError."""
        if isinstance(value, FeatureKey):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise UnknownFeatureError(value) from None


# ── Usage Types ──────────────────────────────────────────────────

@dataclass(frozen=True, order=True)
class UsageWindow:
    """Calendar month a counter accumulates against."""

    year: int
    month: int  # 1~12

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            msg = f"month must be in 1..12: {self.month}"
            raise ValueError(msg)

    @classmethod
    def from_datetime(cls, moment: datetime) -> UsageWindow:
        return cls(year=moment.year, month=moment.month)

    @classmethod
    def parse(cls, period: str) -> UsageWindow:
        """Parse a ``YYYY-MM`` period string."""
        year, _, month = period.partition("-")
        return cls(year=int(year), month=int(month))

    def months_until(self, other: UsageWindow) -> int:
        """Whole calendar months from this window to ``other`` (negative if earlier)."""
        return (other.year - self.year) * 12 + (other.month - self.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass
class UsageCounter:
    """Monthly usage count for one (user, feature) pair."""

    count: int
    window: UsageWindow

    def __post_init__(self) -> None:
        if self.count < 0:
            msg = f"usage count cannot be negative: {self.count}"
            raise ValueError(msg)

    def is_stale(self, now: UsageWindow) -> bool:
        return self.window.months_until(now) >= 1

    def copy(self) -> UsageCounter:
        return replace(self)


@dataclass(frozen=True)
class UsageRecord:
    """A counter as persisted: keyed by user and feature."""

    user_id: str
    feature: FeatureKey
    counter: UsageCounter


@dataclass(frozen=True)
class FeatureUsage:
    """Usage of one feature against the caller's allowance."""

    feature: FeatureKey
    count: int
    allowance: int
    remaining: int | None  # None = unlimited
    window: UsageWindow


@dataclass(frozen=True)
class UsageSummary:
    """Aggregated monthly usage for a user."""

    user_id: str
    tier: Tier
    period: UsageWindow
    features: dict[FeatureKey, FeatureUsage]
