"""Session credential verification.

The login service sets an HTTP-only cookie holding an HS256 JWT whose claims
carry the signed-in user (``sub``, ``email``, ``name``, ``groups``). This
module turns that cookie value into a :class:`Principal`, or ``None``.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

import jwt

from ihub_oauth.api.oauth2.models import Principal

__all__ = ["SessionTokenVerifier", "JwtSessionVerifier", "create_session_token"]

logger = logging.getLogger(__name__)


class SessionTokenVerifier(Protocol):
    def verify(self, token: str | None) -> Principal | None: ...


class JwtSessionVerifier:
    """Verify session JWTs signed with a shared secret."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self._secret = secret
        self._algorithm = algorithm
        if not secret:
            logger.warning("No JWT secret configured; every session credential will be rejected")

    def verify(self, token: str | None) -> Principal | None:
        if not token or not self._secret:
            return None
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Session credential expired")
            return None
        except jwt.InvalidTokenError as exc:
            logger.debug("Session credential rejected: %s", exc)
            return None

        sub = claims.get("sub")
        if not sub:
            return None
        groups = claims.get("groups") or []
        return Principal(
            sub=str(sub),
            email=claims.get("email") or "",
            name=claims.get("name") or "",
            groups=[str(g) for g in groups] if isinstance(groups, list) else [],
        )


def create_session_token(
    principal: Principal,
    secret: str,
    ttl_seconds: int = 3600,
    algorithm: str = "HS256",
) -> str:
    """Issue a session JWT for *principal* (the login service's side of the contract)."""
    now = int(time.time())
    payload = {
        "sub": principal.sub,
        "email": principal.email,
        "name": principal.name,
        "groups": principal.groups,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)
