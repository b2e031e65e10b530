"""Session tokens — HS256 JWTs carrying the user id and subscription tier.

The auth service issues these; the usage API only verifies them. Claims:
``sub`` (user id), ``tier`` (subscription tier name), ``iat``, ``exp``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass

from inkwell.core.logging import get_logger
from inkwell.core.types import Tier

log = get_logger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity of the caller."""

    user_id: str
    tier: Tier
    issued_at: int
    expires_at: int
    extra: dict[str, str]


class TokenManager:
    """Minimal JWT (HS256) signer/verifier with no external dependency."""

    def __init__(self, secret: str, expiry_hours: int = 24) -> None:
        self._secret: str = secret
        self._expiry_hours: int = expiry_hours

    def create_token(
        self,
        user_id: str,
        tier: Tier | str = Tier.FREE,
        extra_claims: dict[str, str] | None = None,
    ) -> str:
        now = int(time.time())
        payload: dict[str, object] = {
            "sub": user_id,
            "tier": Tier.parse(tier).value,
            "iat": now,
            "exp": now + self._expiry_hours * 3600,
        }
        if extra_claims:
            payload.update(extra_claims)

        header = _b64url_encode(json.dumps({"alg": "HS256", "typ": "JWT"}).encode())
        body = _b64url_encode(json.dumps(payload).encode())
        return f"{header}.{body}.{self._sign(f'{header}.{body}')}"

    def verify_token(self, token: str) -> TokenClaims | None:
        """Return the claims of a valid, unexpired token, else None."""
        parts = token.split(".")
        if len(parts) != 3:
            return None

        header_b64, body_b64, sig = parts
        if not hmac.compare_digest(sig, self._sign(f"{header_b64}.{body_b64}")):
            log.warning("jwt_invalid_signature")
            return None

        try:
            payload = json.loads(_b64url_decode(body_b64))
        except (json.JSONDecodeError, ValueError):
            log.warning("jwt_decode_error")
            return None

        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            log.warning("jwt_missing_subject")
            return None

        exp = int(payload.get("exp", 0))
        if int(time.time()) > exp:
            log.debug("jwt_expired", sub=sub)
            return None

        tier = payload.get("tier")
        reserved = {"sub", "tier", "iat", "exp"}
        return TokenClaims(
            user_id=sub,
            tier=Tier.parse(tier if isinstance(tier, str) else None),
            issued_at=int(payload.get("iat", 0)),
            expires_at=exp,
            extra={k: str(v) for k, v in payload.items() if k not in reserved},
        )

    def _sign(self, message: str) -> str:
        digest = hmac.new(self._secret.encode(), message.encode(), hashlib.sha256).digest()
        return _b64url_encode(digest)


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _b64url_decode(s: str) -> bytes:
    padding = 4 - len(s) % 4
    if padding != 4:
        s += "=" * padding
    return base64.urlsafe_b64decode(s)
