# OAuth2 authorization endpoint flow (RFC 6749 §4.1 + RFC 7636).
# Created: 2026-10-19
#
# GET /authorize:  client → redirect_uri → PKCE → session user → consent
#                  decision → code now, or login redirect, or consent page.
# POST /decision:  CSRF → client + redirect_uri again → deny, or session user
#                  again → code → remember consent.
#
# HTTP concerns (cookies, response classes) live in api/v1/oauth2.py; this
# module only returns outcomes or raises OAuthError.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import quote

from ihub_oauth.api.oauth2.consent import ConsentDecision, evaluate_consent
from ihub_oauth.api.oauth2.csrf import issue_csrf_token, verify_csrf_token
from ihub_oauth.api.oauth2.errors import (
    ACCESS_DENIED,
    INVALID_CLIENT,
    INVALID_REQUEST,
    LOGIN_REQUIRED,
    UNAUTHORIZED_CLIENT,
    UNSUPPORTED_RESPONSE_TYPE,
    PlainOAuthError,
    RedirectOAuthError,
    build_redirect_url,
)
from ihub_oauth.api.oauth2.models import (
    AuthorizationCode,
    AuthorizationRequest,
    OAuthClient,
    Principal,
    parse_scopes,
)
from ihub_oauth.api.oauth2.session import SessionStore
from ihub_oauth.api.oauth2.storage import (
    ClientLookup,
    CodeStoreProtocol,
    ConsentStoreProtocol,
)
from ihub_oauth.api.oauth2.templates import render_consent_page
from ihub_oauth.api.oauth2.validation import enforce_pkce_policy, is_valid_redirect_uri
from ihub_oauth.config import DEFAULT_CONSENT_MEMORY_DAYS, Settings
from ihub_oauth.security.session_tokens import SessionTokenVerifier

logger = logging.getLogger(__name__)

REQUEST_SESSION_KEY = "oauth_params"


@dataclass
class LoginRedirect:
    """No signed-in user: send the browser to the login page."""

    location: str


@dataclass
class CodeRedirect:
    """A code was issued; send the browser back to the client."""

    location: str
    code: AuthorizationCode
    reason: ConsentDecision | str


@dataclass
class ConsentPrompt:
    """The user must approve the request on the consent screen."""

    html: str


@dataclass
class ConsentGrant:
    """Consent to remember once the code redirect has gone out."""

    client_id: str
    user_id: str
    scopes: list[str]


AuthorizeOutcome = LoginRedirect | CodeRedirect | ConsentPrompt


class AuthorizationFlow:
    """Authorization endpoint state machine.

    All collaborators are injected so tests can swap in fakes.
    """

    def __init__(
        self,
        clients: ClientLookup,
        codes: CodeStoreProtocol,
        consents: ConsentStoreProtocol,
        sessions: SessionStore,
        verifier: SessionTokenVerifier,
        consent_memory_days: int = DEFAULT_CONSENT_MEMORY_DAYS,
        login_url: str = "/login",
    ):
        self.clients = clients
        self.codes = codes
        self.consents = consents
        self.sessions = sessions
        self.verifier = verifier
        self.consent_memory_days = consent_memory_days
        self.login_url = login_url

    # --- building blocks ---------------------------------------------------

    def resolve_client(self, client_id: str | None) -> OAuthClient:
        """Look up *client_id* and check it may use the code grant.

        Raises PlainOAuthError: there is no trusted redirect target yet.
        """
        if not client_id:
            raise PlainOAuthError(INVALID_REQUEST, "client_id is required")
        client = self.clients.get_client(client_id)
        if client is None:
            raise PlainOAuthError(INVALID_CLIENT, "unknown client_id")
        if not client.active:
            raise PlainOAuthError(ACCESS_DENIED, "client is suspended")
        if not client.supports_authorization_code():
            raise PlainOAuthError(
                UNAUTHORIZED_CLIENT, "client does not support authorization_code grant"
            )
        return client

    @staticmethod
    def validate_redirect_uri(client: OAuthClient, redirect_uri: str | None) -> str:
        if not redirect_uri:
            raise PlainOAuthError(INVALID_REQUEST, "redirect_uri is required")
        if not is_valid_redirect_uri(redirect_uri, client.redirect_uris):
            raise PlainOAuthError(
                INVALID_REQUEST, "redirect_uri not registered for this client"
            )
        return redirect_uri

    def current_principal(self, credential: str | None) -> Principal | None:
        return self.verifier.verify(credential) if credential else None

    def has_remembered_consent(self, client_id: str, user_id: str, scopes: list[str]) -> bool:
        return self.consents.has_consent(client_id, user_id, scopes)

    def issue_code(
        self,
        request: AuthorizationRequest,
        principal: Principal,
        session_id: str | None,
        reason: ConsentDecision | str,
    ) -> CodeRedirect:
        """Store a code bound to *request* and *principal*; build the client redirect."""
        auth_code = self.codes.issue(
            client_id=request.client_id,
            redirect_uri=request.redirect_uri,
            user_id=principal.sub,
            user_email=principal.email,
            user_name=principal.name,
            user_groups=list(principal.groups),
            scopes=list(request.scopes),
            code_challenge=request.code_challenge,
            code_challenge_method=request.code_challenge_method,
            nonce=request.nonce,
        )
        if session_id:
            self.sessions.delete(session_id, REQUEST_SESSION_KEY)

        location = build_redirect_url(
            request.redirect_uri, {"code": auth_code.code, "state": request.state}
        )
        logger.info(
            "Authorization code issued (%s) | client=%s | user=%s",
            reason.value if isinstance(reason, ConsentDecision) else reason,
            request.client_id,
            principal.sub,
        )
        return CodeRedirect(location=location, code=auth_code, reason=reason)

    def remember_consent(self, grant: ConsentGrant) -> None:
        """Persist a consent grant. Failures are logged, never raised."""
        try:
            self.consents.grant(
                grant.client_id, grant.user_id, grant.scopes, self.consent_memory_days
            )
        except Exception as exc:
            logger.warning(
                "Failed to store consent | client=%s | user=%s: %s",
                grant.client_id,
                grant.user_id,
                exc,
            )

    # --- GET /authorize ----------------------------------------------------

    def authorize(
        self,
        *,
        response_type: str | None,
        client_id: str | None,
        redirect_uri: str | None,
        scope: str | None = None,
        state: str | None = None,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
        nonce: str | None = None,
        session_id: str,
        credential: str | None,
        return_url: str,
        decision_url: str,
    ) -> AuthorizeOutcome:
        """Run the authorization endpoint for one request."""
        if response_type != "code":
            raise PlainOAuthError(UNSUPPORTED_RESPONSE_TYPE, 'only "code" is supported')

        client = self.resolve_client(client_id)
        self.validate_redirect_uri(client, redirect_uri)

        request = AuthorizationRequest(
            client_id=client.client_id,
            redirect_uri=redirect_uri,
            response_type=response_type,
            scopes=parse_scopes(scope),
            state=state or "",
            code_challenge=code_challenge or "",
            code_challenge_method=code_challenge_method or "",
            nonce=nonce or "",
        )
        enforce_pkce_policy(client, request)

        principal = self.current_principal(credential)
        if principal is None:
            self.sessions.put(session_id, REQUEST_SESSION_KEY, request.to_dict())
            logger.info("User not signed in, redirecting to login | client=%s", client.client_id)
            login = f"{self.login_url}?returnUrl={quote(return_url, safe='')}"
            return LoginRedirect(location=login)

        decision = evaluate_consent(
            client,
            lambda: self.has_remembered_consent(client.client_id, principal.sub, request.scopes),
        )
        if decision is not ConsentDecision.PROMPT:
            return self.issue_code(request, principal, session_id, decision)

        csrf_token = issue_csrf_token(self.sessions, session_id)
        self.sessions.put(session_id, REQUEST_SESSION_KEY, request.to_dict())
        logger.info(
            "Showing consent screen | client=%s | user=%s", client.client_id, principal.sub
        )
        return ConsentPrompt(
            html=render_consent_page(client, request.scopes, csrf_token, request, decision_url)
        )

    # --- POST /authorize/decision -----------------------------------------

    def decide(
        self,
        *,
        csrf_token: str | None,
        client_id: str | None,
        redirect_uri: str | None,
        decision: str | None,
        session_id: str | None,
        credential: str | None,
    ) -> tuple[CodeRedirect, ConsentGrant]:
        """Handle the consent form submission.

        Returns the code redirect plus the consent to remember. Denial is
        raised as a RedirectOAuthError carrying ``access_denied``.
        """
        if not verify_csrf_token(self.sessions, session_id, csrf_token):
            logger.warning("Consent decision rejected: CSRF token missing or invalid")
            raise PlainOAuthError(INVALID_REQUEST, "CSRF token missing or invalid", 403)

        stored = self.sessions.pop(session_id, REQUEST_SESSION_KEY)
        client = self.resolve_client(client_id)
        self.validate_redirect_uri(client, redirect_uri)

        if not stored:
            raise PlainOAuthError(INVALID_REQUEST, "no pending authorization request")
        request = AuthorizationRequest.from_dict(stored)
        if request.client_id != client.client_id or request.redirect_uri != redirect_uri:
            raise PlainOAuthError(INVALID_REQUEST, "form does not match the pending request")

        if decision != "allow":
            logger.info("User denied consent | client=%s", client.client_id)
            raise RedirectOAuthError(
                request.redirect_uri, ACCESS_DENIED, "User denied access", state=request.state
            )

        principal = self.current_principal(credential)
        if principal is None:
            raise PlainOAuthError(LOGIN_REQUIRED, "Session expired during consent", 401)

        redirect = self.issue_code(request, principal, session_id, "consent")
        return redirect, ConsentGrant(client.client_id, principal.sub, list(request.scopes))


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_flow: AuthorizationFlow | None = None


def build_authorization_flow(settings: Settings) -> AuthorizationFlow:
    """Wire the default file/memory-backed collaborators from *settings*."""
    from ihub_oauth.api.oauth2.session import MemorySessionStore
    from ihub_oauth.api.oauth2.storage import CodeStore, ConsentStore, FileClientStore
    from ihub_oauth.security.session_tokens import JwtSessionVerifier

    return AuthorizationFlow(
        clients=FileClientStore(settings.resolved_clients_file),
        codes=CodeStore(ttl=timedelta(minutes=settings.code_ttl_minutes)),
        consents=ConsentStore(
            settings.resolved_consent_file, ttl_days=settings.consent_memory_days
        ),
        sessions=MemorySessionStore(ttl_seconds=settings.session_ttl_minutes * 60),
        verifier=JwtSessionVerifier(settings.jwt_secret, settings.jwt_algorithm),
        consent_memory_days=settings.consent_memory_days,
        login_url=settings.base_path.rstrip("/") + settings.login_path,
    )


def get_authorization_flow() -> AuthorizationFlow:
    global _flow
    if _flow is None:
        from ihub_oauth.config import get_settings

        _flow = build_authorization_flow(get_settings())
    return _flow


def reset_authorization_flow() -> None:
    global _flow
    _flow = None
