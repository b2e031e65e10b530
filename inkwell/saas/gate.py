"""Decides whether a user may call a feature now, and records the calls.

Two ways to use it:

- ``check_limit`` then ``track_usage``: the request handler checks, performs
  the AI call, then records it. The pair is not atomic; concurrent requests
  for the same (user, feature) can all pass the check before any of them
  records, overshooting the allowance by the number of racers.
- ``consume``: check and record under one per-key lock. Concurrent callers
  never exceed the allowance. The HTTP layer uses this.
"""

from __future__ import annotations

from inkwell.core.constants import NO_ACCESS, UNLIMITED
from inkwell.core.logging import get_logger
from inkwell.core.types import FeatureKey, FeatureUsage, Tier, UsageSummary
from inkwell.saas.policy import TierPolicy
from inkwell.saas.store import QuotaStore

log = get_logger(__name__)


class UsageGate:
    """Composes TierPolicy and QuotaStore."""

    def __init__(self, store: QuotaStore, policy: TierPolicy | None = None) -> None:
        self.store = store
        self.policy = policy or TierPolicy()

    def check_limit(self, user_id: str, feature: FeatureKey, tier: Tier | str | None) -> bool:
        """Return True if the user has allowance left. Never mutates usage."""
        allowance = self.policy.allowance_for(tier, feature)
        if allowance == UNLIMITED:
            return True
        current = 0 if allowance == NO_ACCESS else self.store.current_count(user_id, feature)
        allowed = allowance != NO_ACCESS and current < allowance
        if not allowed:
            # Polled by dashboards; the warning is left to consume.
            log.debug(
                "quota_check_denied",
                user_id=user_id,
                feature=feature.value,
                allowance=allowance,
                current=current,
            )
        return allowed

    def track_usage(self, user_id: str, feature: FeatureKey) -> int:
        """Record one use unconditionally. Callers check first."""
        count = self.store.increment(user_id, feature)
        log.info("usage_tracked", user_id=user_id, feature=feature.value, count=count)
        return count

    def consume(self, user_id: str, feature: FeatureKey, tier: Tier | str | None) -> bool:
        """Atomically check the allowance and record one use if permitted."""
        allowance = self.policy.allowance_for(tier, feature)
        count = self.store.try_increment(user_id, feature, allowance)
        if count is None:
            self._log_denied(user_id, feature, tier, allowance)
            return False
        log.info("usage_tracked", user_id=user_id, feature=feature.value, count=count)
        return True

    def usage_summary(self, user_id: str, tier: Tier | str | None) -> UsageSummary:
        """This month's count, allowance and remaining uses for every feature."""
        resolved = Tier.parse(tier)
        period = self.store.current_window()
        counters = self.store.counters_for(user_id)

        features: dict[FeatureKey, FeatureUsage] = {}
        for feature, allowance in self.policy.allowances_for(resolved).items():
            counter = counters.get(feature)
            count = counter.count if counter is not None else 0
            if allowance == UNLIMITED:
                remaining = None
            else:
                remaining = max(allowance - count, 0)
            features[feature] = FeatureUsage(
                feature=feature,
                count=count,
                allowance=allowance,
                remaining=remaining,
                window=counter.window if counter is not None else period,
            )

        return UsageSummary(user_id=user_id, tier=resolved, period=period, features=features)

    def reset_usage(self, user_id: str, feature: FeatureKey | None = None) -> None:
        self.store.reset(user_id, feature)
        log.info(
            "usage_reset",
            user_id=user_id,
            feature=feature.value if feature is not None else "all",
        )

    @staticmethod
    def _log_denied(
        user_id: str,
        feature: FeatureKey,
        tier: Tier | str | None,
        allowance: int,
    ) -> None:
        log.warning(
            "quota_exceeded",
            user_id=user_id,
            feature=feature.value,
            tier=Tier.parse(tier).value,
            allowance=allowance,
        )
