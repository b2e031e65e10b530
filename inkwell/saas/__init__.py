"""Subscription layer: tier allowances, monthly usage counters, and the usage gate."""

from inkwell.saas.gate import UsageGate
from inkwell.saas.policy import TIER_ALLOWANCES, TierPolicy, is_unlimited
from inkwell.saas.store import QuotaStore
from inkwell.saas.tokens import TokenClaims, TokenManager

__all__ = [
    "UsageGate",
    "TIER_ALLOWANCES",
    "TierPolicy",
    "is_unlimited",
    "QuotaStore",
    "TokenClaims",
    "TokenManager",
]
