# OAuth2 authorization errors (RFC 6749 §4.1.2.1).
# Created: 2026-10-19
#
# Errors split on whether a verified redirect target exists. Anything raised
# before redirect_uri is validated is a PlainOAuthError and is answered on
# this server; afterwards a RedirectOAuthError goes back to the client.

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

INVALID_REQUEST = "invalid_request"
INVALID_CLIENT = "invalid_client"
UNAUTHORIZED_CLIENT = "unauthorized_client"
UNSUPPORTED_RESPONSE_TYPE = "unsupported_response_type"
ACCESS_DENIED = "access_denied"
LOGIN_REQUIRED = "login_required"
SERVER_ERROR = "server_error"


def build_redirect_url(redirect_uri: str, params: dict[str, str]) -> str:
    """Append *params* to *redirect_uri*, keeping any query it already has.

    Empty values are dropped so an absent ``state`` is not echoed as ``state=``.
    """
    parts = urlsplit(redirect_uri)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((k, v) for k, v in params.items() if v)
    return urlunsplit(parts._replace(query=urlencode(query)))


class OAuthError(Exception):
    """Base class for authorization endpoint errors."""

    def __init__(self, error: str, description: str = ""):
        super().__init__(f"{error}: {description}" if description else error)
        self.error = error
        self.description = description


class PlainOAuthError(OAuthError):
    """Error answered with a plain-text HTTP body, never redirected."""

    def __init__(self, error: str, description: str = "", status_code: int = 400):
        super().__init__(error, description)
        self.status_code = status_code

    @property
    def body(self) -> str:
        return f"{self.error}: {self.description}" if self.description else self.error


class RedirectOAuthError(OAuthError):
    """Error reported to the client through its validated redirect_uri."""

    def __init__(self, redirect_uri: str, error: str, description: str = "", state: str = ""):
        super().__init__(error, description)
        self.redirect_uri = redirect_uri
        self.state = state

    @property
    def location(self) -> str:
        return build_redirect_url(
            self.redirect_uri,
            {"error": self.error, "error_description": self.description, "state": self.state},
        )
