"""JWT authentication middleware for FastAPI."""

from __future__ import annotations

from fastapi import Cookie, HTTPException, Request, status

from config.settings import get_settings
from inkwell.core.logging import get_logger
from inkwell.core.types import Tier
from inkwell.saas.tokens import TokenClaims, TokenManager

log = get_logger(__name__)

_token_manager: TokenManager | None = None


def _get_tokens() -> TokenManager:
    """Lazy-init singleton TokenManager."""
    global _token_manager  # noqa: PLW0603
    if _token_manager is None:
        settings = get_settings()
        _token_manager = TokenManager(
            secret=settings.inkwell_jwt_secret.get_secret_value(),
            expiry_hours=settings.inkwell_jwt_expiry_hours,
        )
    return _token_manager


def create_jwt(user_id: str, tier: Tier | str = Tier.FREE, extra: dict[str, str] | None = None) -> str:
    """Create a JWT token for the given user and tier."""
    return _get_tokens().create_token(user_id, tier, extra_claims=extra)


def verify_jwt(token: str) -> TokenClaims | None:
    """Verify a JWT token and return its claims."""
    return _get_tokens().verify_token(token)


async def get_current_user(
    request: Request,
    inkwell_token: str | None = Cookie(default=None),
) -> TokenClaims:
    """Extract and verify the JWT from the cookie or Authorization header."""
    token: str | None = inkwell_token

    # Fallback: check Authorization header (for API clients)
    if not token:
        auth_header = request.headers.get("authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    claims = verify_jwt(token)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return claims
