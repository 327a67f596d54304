# Redirect URI and PKCE policy checks for the authorize endpoint.
# Created: 2026-10-19

from __future__ import annotations

from collections.abc import Iterable

from ihub_oauth.api.oauth2.errors import INVALID_REQUEST, RedirectOAuthError
from ihub_oauth.api.oauth2.models import AuthorizationRequest, OAuthClient
from ihub_oauth.api.oauth2.pkce import SUPPORTED_METHODS


def is_valid_redirect_uri(redirect_uri: str | None, allowed_uris: Iterable[str] | None) -> bool:
    """True iff *redirect_uri* is byte-identical to one of *allowed_uris*.

    No normalisation of any kind: prefixes, substrings, trailing slashes,
    case differences and wildcards all fail.
    """
    if not redirect_uri or not allowed_uris:
        return False
    return any(redirect_uri == allowed for allowed in allowed_uris)


def enforce_pkce_policy(client: OAuthClient, request: AuthorizationRequest) -> None:
    """Require an S256 code_challenge from public clients.

    Only called once redirect_uri has been validated, so the violation is
    reported back to the client. Confidential clients may omit PKCE.
    """
    if not client.is_public:
        return
    if not request.code_challenge or request.code_challenge_method not in SUPPORTED_METHODS:
        raise RedirectOAuthError(
            request.redirect_uri,
            INVALID_REQUEST,
            "PKCE with S256 is required for public clients",
            state=request.state,
        )
