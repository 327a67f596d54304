"""PKCE (Proof Key for Code Exchange) utilities.

Implements the S256 method of RFC 7636. The ``plain`` method is not supported:
a challenge is only ever compared as ``BASE64URL(SHA256(verifier))``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

S256 = "S256"
SUPPORTED_METHODS = frozenset({S256})


def generate_code_verifier() -> str:
    """Return a random 43-character code_verifier (32 bytes, base64url)."""
    return secrets.token_urlsafe(32)


def compute_challenge(code_verifier: str) -> str:
    """Compute the S256 code_challenge for *code_verifier* (unpadded base64url)."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def generate_pkce_pair() -> tuple[str, str]:
    """Return a ``(code_verifier, code_challenge)`` pair."""
    verifier = generate_code_verifier()
    return verifier, compute_challenge(verifier)


def verify_code_challenge(
    code_verifier: str | None,
    code_challenge: str | None,
    method: str = S256,
) -> bool:
    """Check a verifier presented at exchange time against the stored challenge.

    Returns False for missing inputs or any method other than S256.
    """
    if not code_verifier or not code_challenge or method not in SUPPORTED_METHODS:
        return False
    try:
        expected = compute_challenge(code_verifier)
    except UnicodeEncodeError:
        return False
    return hmac.compare_digest(expected, code_challenge)
