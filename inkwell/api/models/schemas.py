"""Pydantic V2 request/response schemas for the Inkwell usage API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from inkwell.core.constants import API_VERSION
from inkwell.core.types import FeatureUsage, UsageSummary


# ── Usage ─────────────────────────────────────────────────────────

class FeatureUsageOut(BaseModel):
    feature: str
    count: int
    allowance: int
    remaining: int | None = None  # None = unlimited
    unlimited: bool = False
    window: str

    @classmethod
    def from_usage(cls, usage: FeatureUsage) -> FeatureUsageOut:
        return cls(
            feature=usage.feature.value,
            count=usage.count,
            allowance=usage.allowance,
            remaining=usage.remaining,
            unlimited=usage.remaining is None,
            window=str(usage.window),
        )


class UsageOut(BaseModel):
    user_id: str
    tier: str
    period: str
    features: list[FeatureUsageOut] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: UsageSummary) -> UsageOut:
        return cls(
            user_id=summary.user_id,
            tier=summary.tier.value,
            period=str(summary.period),
            features=[FeatureUsageOut.from_usage(u) for u in summary.features.values()],
        )


class FeatureCheckOut(FeatureUsageOut):
    """Result of a read-only limit check."""

    allowed: bool


class ResetOut(BaseModel):
    user_id: str
    feature: str | None = None  # None = all features


# ── Generic ───────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = API_VERSION
    environment: str = "dev"
    quota_persistence: bool = False


class ErrorResponse(BaseModel):
    detail: str
