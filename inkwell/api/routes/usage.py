"""Usage endpoints — monthly quota status, consumption, and admin reset."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from inkwell.api.db.usage import UsageRepository
from inkwell.api.deps import (
    consume_or_raise,
    get_usage_gate,
    get_usage_repo,
    parse_feature,
    require_internal_token,
)
from inkwell.api.middleware import get_current_user
from inkwell.api.models.schemas import FeatureCheckOut, FeatureUsageOut, ResetOut, UsageOut
from inkwell.core.types import FeatureKey
from inkwell.saas.gate import UsageGate
from inkwell.saas.tokens import TokenClaims

router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("", response_model=UsageOut)
async def get_usage(
    claims: TokenClaims = Depends(get_current_user),
    gate: UsageGate = Depends(get_usage_gate),
) -> UsageOut:
    """Current month's usage and allowances for the authenticated user."""
    return UsageOut.from_summary(gate.usage_summary(claims.user_id, claims.tier))


@router.get("/{feature}", response_model=FeatureCheckOut)
async def check_feature(
    feature: FeatureKey = Depends(parse_feature),
    claims: TokenClaims = Depends(get_current_user),
    gate: UsageGate = Depends(get_usage_gate),
) -> FeatureCheckOut:
    """Whether the user may call the feature now. Does not record anything."""
    allowed = gate.check_limit(claims.user_id, feature, claims.tier)
    usage = gate.usage_summary(claims.user_id, claims.tier).features[feature]
    return FeatureCheckOut(allowed=allowed, **FeatureUsageOut.from_usage(usage).model_dump())


@router.post("/{feature}", response_model=FeatureUsageOut)
async def consume_feature(
    feature: FeatureKey = Depends(parse_feature),
    claims: TokenClaims = Depends(get_current_user),
    gate: UsageGate = Depends(get_usage_gate),
    repo: UsageRepository | None = Depends(get_usage_repo),
) -> FeatureUsageOut:
    """Record one use of the feature; 429 when the monthly allowance is used up."""
    await consume_or_raise(gate, repo, claims, feature)
    usage = gate.usage_summary(claims.user_id, claims.tier).features[feature]
    return FeatureUsageOut.from_usage(usage)


@router.delete("", response_model=ResetOut, dependencies=[Depends(require_internal_token)])
async def reset_usage(
    feature: str | None = None,
    user_id: str | None = None,
    claims: TokenClaims = Depends(get_current_user),
    gate: UsageGate = Depends(get_usage_gate),
    repo: UsageRepository | None = Depends(get_usage_repo),
) -> ResetOut:
    """Reset one feature (or all) for ``user_id``, defaulting to the caller."""
    target = user_id or claims.user_id
    key = parse_feature(feature) if feature else None

    gate.reset_usage(target, key)
    if repo is not None:
        await repo.delete(target, key)

    return ResetOut(user_id=target, feature=key.value if key is not None else None)
