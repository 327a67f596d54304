# Single-use CSRF tokens for the consent form.
# Created: 2026-10-19

from __future__ import annotations

import hmac
import logging
import secrets

from ihub_oauth.api.oauth2.session import SessionStore

logger = logging.getLogger(__name__)

CSRF_SESSION_KEY = "csrf_token"


def generate_csrf_token() -> str:
    """Return a 256-bit random token as 64 hex characters."""
    return secrets.token_hex(32)


def issue_csrf_token(sessions: SessionStore, session_id: str) -> str:
    """Create a token and bind it to *session_id*, replacing any previous one."""
    token = generate_csrf_token()
    sessions.put(session_id, CSRF_SESSION_KEY, token)
    return token


def verify_csrf_token(
    sessions: SessionStore, session_id: str | None, submitted: str | None
) -> bool:
    """Check *submitted* against the session token and consume it.

    The session token is removed on every attempt, so a second submission of
    the same value always fails.
    """
    expected = sessions.pop(session_id, CSRF_SESSION_KEY) if session_id else None
    if not expected or not submitted:
        logger.info("CSRF token missing (session=%s, form=%s)", bool(expected), bool(submitted))
        return False
    return hmac.compare_digest(expected.encode("utf-8"), submitted.encode("utf-8"))
