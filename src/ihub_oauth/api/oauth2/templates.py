# Consent screen HTML.
# Created: 2026-10-19
#
# Self-contained page: inline CSS only, no external scripts or styles.
# Every dynamic value is passed through escape() before interpolation.

from __future__ import annotations

import html

from ihub_oauth.api.oauth2.models import AuthorizationRequest, OAuthClient

SCOPE_DESCRIPTIONS: dict[str, str] = {
    "openid": "Verify your identity",
    "profile": "Access your name and profile information",
    "email": "Access your email address",
    "offline_access": "Access resources when you are not actively using the app (refresh tokens)",
}

_CONSENT_HTML = """<!DOCTYPE html>
<html lang="en"><head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Authorize {client_name}</title>
<style>
body {{ font-family: system-ui, sans-serif; background: #f3f4f6; display: flex;
  align-items: center; justify-content: center; min-height: 100vh; margin: 0; padding: 16px; }}
.card {{ background: white; border-radius: 12px; box-shadow: 0 4px 24px rgba(0,0,0,0.12);
  max-width: 420px; width: 100%; padding: 32px; }}
h1 {{ font-size: 20px; text-align: center; margin: 0 0 8px; color: #111827; }}
.subtitle {{ font-size: 14px; color: #6b7280; text-align: center; margin-bottom: 24px; }}
.scopes {{ list-style: none; padding: 0; margin: 0 0 24px; }}
.scope {{ padding: 10px 0; border-bottom: 1px solid #f3f4f6; font-size: 14px; color: #374151; }}
.scope:last-child {{ border-bottom: none; }}
.scope small {{ color: #6b7280; }}
.actions {{ display: flex; gap: 12px; }}
.btn {{ flex: 1; padding: 10px 16px; border: none; border-radius: 8px; cursor: pointer; font-size: 14px; }}
.allow {{ background: #2563eb; color: white; }} .allow:hover {{ background: #1d4ed8; }}
.deny {{ background: #e5e7eb; color: #374151; }}
.client-id {{ font-size: 12px; color: #9ca3af; text-align: center; margin-top: 16px; word-break: break-all; }}
</style></head><body>
<div class="card">
<h1>{client_name}</h1>
<p class="subtitle">wants to access your account</p>
{scope_section}
<form method="POST" action="{action_url}">
<input type="hidden" name="_csrf" value="{csrf_token}">
<input type="hidden" name="client_id" value="{client_id}">
<input type="hidden" name="redirect_uri" value="{redirect_uri}">
<input type="hidden" name="state" value="{state}">
<input type="hidden" name="scope" value="{scope}">
<input type="hidden" name="nonce" value="{nonce}">
<div class="actions">
<button type="submit" name="decision" value="deny" class="btn deny">Deny</button>
<button type="submit" name="decision" value="allow" class="btn allow">Allow</button>
</div>
</form>
<p class="client-id">Client ID: {client_id}</p>
</div></body></html>"""


def escape(value: object) -> str:
    """HTML-escape *value* for text and attribute context. None becomes ''."""
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def _scope_item(scope: str) -> str:
    description = SCOPE_DESCRIPTIONS.get(scope)
    detail = f"<br><small>{escape(description)}</small>" if description else ""
    return f'<li class="scope"><strong>{escape(scope)}</strong>{detail}</li>'


def render_consent_page(
    client: OAuthClient,
    scopes: list[str],
    csrf_token: str,
    request: AuthorizationRequest,
    action_url: str,
) -> str:
    """Render the consent screen for *client* requesting *scopes*."""
    scope_section = ""
    if scopes:
        items = "".join(_scope_item(s) for s in scopes)
        scope_section = (
            '<p class="subtitle">This application will be able to:</p>'
            f'<ul class="scopes">{items}</ul>'
        )

    return _CONSENT_HTML.format(
        client_name=escape(client.name or client.client_id),
        scope_section=scope_section,
        action_url=escape(action_url),
        csrf_token=escape(csrf_token),
        client_id=escape(request.client_id),
        redirect_uri=escape(request.redirect_uri),
        state=escape(request.state),
        scope=escape(request.scope),
        nonce=escape(request.nonce),
    )
