"""Custom exception hierarchy for Inkwell."""

from __future__ import annotations

from typing import Any


class InkwellBaseError(Exception):
    """Base exception for all Inkwell errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = context or {}


# ── Quota Layer ──────────────────────────────────────────────────

class UnknownFeatureError(InkwellBaseError):
    """Feature key is not one of the rate-limited capabilities."""

    def __init__(self, feature: str) -> None:
        super().__init__(f"Unknown feature: {feature}", {"feature": feature})
        self.feature = feature


class QuotaExceededError(InkwellBaseError):
    """Monthly allowance for a feature is used up (or the tier has no access)."""

    def __init__(self, user_id: str, feature: str, tier: str, allowance: int) -> None:
        label = feature.replace("_", " ")
        super().__init__(
            f"Monthly {label} limit reached",
            {"user_id": user_id, "feature": feature, "tier": tier, "allowance": allowance},
        )
        self.user_id = user_id
        self.feature = feature
        self.tier = tier
        self.allowance = allowance
