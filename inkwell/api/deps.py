"""FastAPI dependency injection — shared instances for routes."""

from __future__ import annotations

import hmac
from collections.abc import Awaitable, Callable

from fastapi import Depends, Header, HTTPException, Request, status

from config.settings import get_settings
from inkwell.api.db.usage import UsageRepository
from inkwell.api.middleware import get_current_user
from inkwell.core.exceptions import QuotaExceededError
from inkwell.core.types import FeatureKey
from inkwell.saas.gate import UsageGate
from inkwell.saas.tokens import TokenClaims

# ── Quota services ────────────────────────────────────────────────


def get_usage_gate(request: Request) -> UsageGate:
    """The app-wide UsageGate built in create_app."""
    return request.app.state.usage_gate


def get_usage_repo(request: Request) -> UsageRepository | None:
    """The usage repository, or None when quotas are memory-only."""
    return getattr(request.app.state, "usage_repo", None)


def parse_feature(feature: str) -> FeatureKey:
    """Path parameter -> FeatureKey; unknown keys raise UnknownFeatureError (404)."""
    return FeatureKey.parse(feature)


async def persist_counter(
    repo: UsageRepository | None,
    gate: UsageGate,
    user_id: str,
    feature: FeatureKey,
) -> None:
    """Write the current counter through to the database, if persistence is on."""
    if repo is None:
        return
    counter = gate.store.snapshot(user_id, feature)
    if counter is not None:
        await repo.save(user_id, feature, counter)


async def consume_or_raise(
    gate: UsageGate,
    repo: UsageRepository | None,
    claims: TokenClaims,
    feature: FeatureKey,
) -> None:
    """Atomically record one use, raising QuotaExceededError when denied."""
    if not gate.consume(claims.user_id, feature, claims.tier):
        raise QuotaExceededError(
            user_id=claims.user_id,
            feature=feature.value,
            tier=claims.tier.value,
            allowance=gate.policy.allowance_for(claims.tier, feature),
        )
    await persist_counter(repo, gate, claims.user_id, feature)


def require_quota(feature: FeatureKey) -> Callable[..., Awaitable[TokenClaims]]:
    """Route dependency: consume one use of ``feature`` or answer 429.

    Usage::

        @router.post("/generate-story")
        async def generate_story(claims=Depends(require_quota(FeatureKey.STORY_GENERATION))):
            ...
    """

    async def _dependency(
        claims: TokenClaims = Depends(get_current_user),
        gate: UsageGate = Depends(get_usage_gate),
        repo: UsageRepository | None = Depends(get_usage_repo),
    ) -> TokenClaims:
        await consume_or_raise(gate, repo, claims, feature)
        return claims

    return _dependency


# ── Internal service auth ─────────────────────────────────────────


async def require_internal_token(
    x_internal_token: str | None = Header(default=None),
) -> None:
    """Guard admin endpoints. Closed to everyone when INKWELL_INTERNAL_TOKEN is unset."""
    expected = get_settings().inkwell_internal_token.get_secret_value()
    if not expected or not x_internal_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    if not hmac.compare_digest(x_internal_token, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
