# OAuth2 router: authorization endpoint and consent decision.
# Created: 2026-10-19

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import (
    HTMLResponse,
    PlainTextResponse,
    RedirectResponse,
    Response,
)

from ihub_oauth.api.oauth2.errors import SERVER_ERROR, PlainOAuthError, RedirectOAuthError
from ihub_oauth.api.oauth2.server import (
    CodeRedirect,
    ConsentPrompt,
    LoginRedirect,
    get_authorization_flow,
)
from ihub_oauth.api.oauth2.session import new_session_id
from ihub_oauth.api.v1.schemas.oauth2 import DecisionForm

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth2"])


def _plain_error(exc: PlainOAuthError) -> PlainTextResponse:
    return PlainTextResponse(exc.body, status_code=exc.status_code)


def _server_error() -> PlainTextResponse:
    return PlainTextResponse(f"{SERVER_ERROR}: An internal error occurred", status_code=500)


def _rate_limited(request: Request) -> PlainTextResponse | None:
    from ihub_oauth.security.rate_limiter import authorize_limiter

    client_ip = request.client.host if request.client else "unknown"
    info = authorize_limiter.check(client_ip)
    if info.allowed:
        return None
    return PlainTextResponse("Too many requests", status_code=429, headers=info.headers())


def _set_session_cookie(response: Response, name: str, session_id: str, secure: bool) -> None:
    response.set_cookie(
        key=name,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=secure,
        path="/",
    )


@router.get("/oauth/authorize")
async def authorize(
    request: Request,
    response_type: str | None = Query(None),
    client_id: str | None = Query(None),
    redirect_uri: str | None = Query(None),
    scope: str | None = Query(None),
    state: str | None = Query(None),
    code_challenge: str | None = Query(None),
    code_challenge_method: str | None = Query(None),
    nonce: str | None = Query(None),
):
    """Authorization endpoint (RFC 6749 §4.1.1)."""
    from ihub_oauth.config import get_settings

    limited = _rate_limited(request)
    if limited is not None:
        return limited

    settings = get_settings()
    if not settings.oauth_enabled:
        return PlainTextResponse("OAuth is not enabled on this server", status_code=400)

    session_id = request.cookies.get(settings.oauth_session_cookie_name)
    is_new_session = not session_id
    if is_new_session:
        session_id = new_session_id()

    return_url = request.url.path + (f"?{request.url.query}" if request.url.query else "")

    try:
        outcome = get_authorization_flow().authorize(
            response_type=response_type,
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            state=state,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
            nonce=nonce,
            session_id=session_id,
            credential=request.cookies.get(settings.session_cookie_name),
            return_url=return_url,
            decision_url=str(request.url_for("authorize_decision")),
        )
    except PlainOAuthError as exc:
        return _plain_error(exc)
    except RedirectOAuthError as exc:
        return RedirectResponse(exc.location, status_code=302)
    except Exception:
        logger.exception("Error in GET /oauth/authorize")
        return _server_error()

    response: Response
    if isinstance(outcome, ConsentPrompt):
        response = HTMLResponse(
            outcome.html,
            headers={"Cache-Control": "no-store", "X-Frame-Options": "DENY"},
        )
    elif isinstance(outcome, (LoginRedirect, CodeRedirect)):
        response = RedirectResponse(outcome.location, status_code=302)
    else:
        logger.error("Unexpected authorize outcome: %r", outcome)
        return _server_error()

    if is_new_session:
        _set_session_cookie(
            response, settings.oauth_session_cookie_name, session_id, settings.cookie_secure
        )
    return response


@router.post("/oauth/authorize/decision", name="authorize_decision")
async def authorize_decision(request: Request, background_tasks: BackgroundTasks):
    """Process the consent form submission."""
    from ihub_oauth.config import get_settings

    limited = _rate_limited(request)
    if limited is not None:
        return limited

    settings = get_settings()
    if not settings.oauth_enabled:
        return PlainTextResponse("OAuth is not enabled on this server", status_code=400)

    try:
        form = DecisionForm.from_form(await request.form())
        flow = get_authorization_flow()
        redirect, grant = flow.decide(
            csrf_token=form.csrf,
            client_id=form.client_id,
            redirect_uri=form.redirect_uri,
            decision=form.decision,
            session_id=request.cookies.get(settings.oauth_session_cookie_name),
            credential=request.cookies.get(settings.session_cookie_name),
        )
    except PlainOAuthError as exc:
        return _plain_error(exc)
    except RedirectOAuthError as exc:
        return RedirectResponse(exc.location, status_code=302)
    except Exception:
        logger.exception("Error in POST /oauth/authorize/decision")
        return _server_error()

    # Runs after the redirect is sent; errors are logged inside.
    background_tasks.add_task(flow.remember_consent, grant)
    return RedirectResponse(redirect.location, status_code=302)
