# Shared fixtures for the OAuth2 authorize flow tests.
# Created: 2026-10-19

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ihub_oauth.api.oauth2.models import ClientType, OAuthClient, Principal
from ihub_oauth.api.oauth2.server import AuthorizationFlow
from ihub_oauth.api.oauth2.session import MemorySessionStore
from ihub_oauth.api.oauth2.storage import ClientStore, CodeStore, ConsentStore
from ihub_oauth.security.session_tokens import JwtSessionVerifier, create_session_token

JWT_SECRET = "test-jwt-secret-for-session-cookies"
APP1_CALLBACK = "https://app1.example/cb"


def make_client(**overrides) -> OAuthClient:
    fields = {
        "client_id": "app1",
        "name": "App One",
        "client_type": ClientType.CONFIDENTIAL,
        "redirect_uris": [APP1_CALLBACK],
        "grant_types": ["authorization_code", "refresh_token"],
        "trusted": False,
        "consent_required": True,
        "active": True,
    }
    fields.update(overrides)
    return OAuthClient(**fields)


@pytest.fixture
def user():
    return Principal(sub="user-123", email="ada@example.com", name="Ada", groups=["staff"])


@pytest.fixture
def session_token(user):
    return create_session_token(user, JWT_SECRET)


@pytest.fixture
def clients():
    return ClientStore(
        [
            make_client(),
            make_client(
                client_id="trusted-app",
                name="First Party",
                redirect_uris=["https://first.example/cb"],
                trusted=True,
            ),
            make_client(
                client_id="spa",
                name="Browser SPA",
                client_type=ClientType.PUBLIC,
                redirect_uris=["https://spa.example/callback"],
            ),
            make_client(client_id="suspended", active=False),
            make_client(client_id="machine", grant_types=["client_credentials"]),
        ]
    )


@pytest.fixture
def consents(tmp_path):
    return ConsentStore(tmp_path / "oauth-consent.json", ttl_days=90)


@pytest.fixture
def sessions():
    return MemorySessionStore(ttl_seconds=600)


@pytest.fixture
def flow(clients, consents, sessions):
    return AuthorizationFlow(
        clients=clients,
        codes=CodeStore(),
        consents=consents,
        sessions=sessions,
        verifier=JwtSessionVerifier(JWT_SECRET),
        consent_memory_days=90,
        login_url="/login",
    )


@pytest.fixture
def settings(monkeypatch, tmp_path):
    import ihub_oauth.config as config_mod

    settings = config_mod.Settings(
        jwt_secret=JWT_SECRET,
        clients_file=tmp_path / "oauth-clients.json",
        consent_file=tmp_path / "oauth-consent.json",
    )
    monkeypatch.setattr(config_mod, "get_settings", lambda: settings)
    return settings


@pytest.fixture
def test_app(flow, settings, monkeypatch):
    import ihub_oauth.api.oauth2.server as server_mod
    from ihub_oauth.api.v1 import mount_routers

    monkeypatch.setattr(server_mod, "_flow", flow)
    app = FastAPI()
    mount_routers(app)
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    from ihub_oauth.security.rate_limiter import authorize_limiter

    authorize_limiter.reset()
    yield
    authorize_limiter.reset()
