"""Tests for API Pydantic schemas."""

from __future__ import annotations

from inkwell.api.models.schemas import (
    ErrorResponse,
    FeatureCheckOut,
    FeatureUsageOut,
    HealthResponse,
    ResetOut,
    UsageOut,
)
from inkwell.core.types import FeatureKey, FeatureUsage, Tier, UsageSummary, UsageWindow


def _usage(feature: FeatureKey, count: int, allowance: int, remaining: int | None) -> FeatureUsage:
    return FeatureUsage(
        feature=feature,
        count=count,
        allowance=allowance,
        remaining=remaining,
        window=UsageWindow(2026, 10),
    )


class TestFeatureUsageOut:
    def test_from_finite_usage(self) -> None:
        out = FeatureUsageOut.from_usage(_usage(FeatureKey.AI_CHAT, 4, 10, 6))
        assert out.feature == "ai_chat"
        assert out.remaining == 6
        assert out.unlimited is False
        assert out.window == "2026-10"

    def test_from_unlimited_usage(self) -> None:
        out = FeatureUsageOut.from_usage(_usage(FeatureKey.AI_CHAT, 4, -1, None))
        assert out.unlimited is True
        assert out.remaining is None


class TestUsageOut:
    def test_from_summary(self) -> None:
        summary = UsageSummary(
            user_id="u1",
            tier=Tier.AMADOR,
            period=UsageWindow(2026, 10),
            features={
                FeatureKey.STORY_GENERATION: _usage(FeatureKey.STORY_GENERATION, 2, 10, 8),
                FeatureKey.COVER_GENERATION: _usage(FeatureKey.COVER_GENERATION, 0, 5, 5),
            },
        )
        out = UsageOut.from_summary(summary)
        assert out.tier == "Amador"
        assert out.period == "2026-10"
        assert [f.feature for f in out.features] == ["story_generation", "cover_generation"]

    def test_json_round_trip(self) -> None:
        out = UsageOut(user_id="u1", tier="Free", period="2026-10")
        assert UsageOut.model_validate_json(out.model_dump_json()) == out


class TestMisc:
    def test_check_out_carries_allowed(self) -> None:
        base = FeatureUsageOut.from_usage(_usage(FeatureKey.EXPORT_PDF, 0, 0, 0))
        check = FeatureCheckOut(allowed=False, **base.model_dump())
        assert check.allowed is False
        assert check.allowance == 0

    def test_reset_defaults_all_features(self) -> None:
        assert ResetOut(user_id="u1").feature is None

    def test_health_defaults(self) -> None:
        health = HealthResponse()
        assert health.status == "ok"
        assert health.version == "0.1.0"
        assert health.quota_persistence is False

    def test_error_response(self) -> None:
        assert ErrorResponse(detail="boom").detail == "boom"
