# Tests for redirect URI matching, PKCE policy and PKCE helpers.
# Created: 2026-10-19

import pytest
from conftest import make_client

from ihub_oauth.api.oauth2.errors import RedirectOAuthError
from ihub_oauth.api.oauth2.models import AuthorizationRequest, ClientType
from ihub_oauth.api.oauth2.pkce import (
    compute_challenge,
    generate_code_verifier,
    generate_pkce_pair,
    verify_code_challenge,
)
from ihub_oauth.api.oauth2.validation import enforce_pkce_policy, is_valid_redirect_uri

ALLOWED = ["https://app.example/cb", "http://localhost:3000/callback", "myapp://oauth"]


class TestRedirectUri:
    @pytest.mark.parametrize("uri", ALLOWED)
    def test_exact_match(self, uri):
        assert is_valid_redirect_uri(uri, ALLOWED) is True

    @pytest.mark.parametrize(
        "uri",
        [
            "https://app.example/cb/",
            "https://app.example/c",
            "https://app.example/cb?x=1",
            "https://app.example/cb#frag",
            "https://app.example",
            "https://APP.example/cb",
            "http://app.example/cb",
            "https://app.example.evil.com/cb",
            "https://evil.com/?https://app.example/cb",
            " https://app.example/cb",
            "http://localhost:3000/callback/../../evil",
            "myapp://oauth/extra",
        ],
    )
    def test_near_misses_rejected(self, uri):
        assert is_valid_redirect_uri(uri, ALLOWED) is False

    def test_wildcard_entries_are_literal(self):
        assert is_valid_redirect_uri("https://a.example/cb", ["https://*.example/cb"]) is False
        assert is_valid_redirect_uri("https://*.example/cb", ["https://*.example/cb"]) is True

    @pytest.mark.parametrize(
        "uri, allowed", [("", ALLOWED), (None, ALLOWED), ("x", []), ("x", None)]
    )
    def test_empty_inputs(self, uri, allowed):
        assert is_valid_redirect_uri(uri, allowed) is False


class TestPkcePolicy:
    def _request(self, **kw):
        return AuthorizationRequest(client_id="c", redirect_uri="https://app.example/cb", **kw)

    def test_public_client_needs_challenge(self):
        client = make_client(client_type=ClientType.PUBLIC)
        with pytest.raises(RedirectOAuthError) as excinfo:
            enforce_pkce_policy(client, self._request(state="s1"))
        err = excinfo.value
        assert err.error == "invalid_request"
        assert err.redirect_uri == "https://app.example/cb"
        assert "state=s1" in err.location

    @pytest.mark.parametrize("method", ["", "plain", "s256", "S512"])
    def test_public_client_needs_s256(self, method):
        client = make_client(client_type=ClientType.PUBLIC)
        request = self._request(code_challenge="abc", code_challenge_method=method)
        with pytest.raises(RedirectOAuthError):
            enforce_pkce_policy(client, request)

    def test_public_client_with_s256_passes(self):
        client = make_client(client_type=ClientType.PUBLIC)
        _, challenge = generate_pkce_pair()
        enforce_pkce_policy(
            client, self._request(code_challenge=challenge, code_challenge_method="S256")
        )

    def test_confidential_client_not_required(self):
        enforce_pkce_policy(make_client(), self._request())


class TestPkceHelpers:
    def test_verifier_shape(self):
        verifier = generate_code_verifier()
        assert len(verifier) == 43
        assert generate_code_verifier() != verifier

    def test_rfc7636_appendix_b_vector(self):
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert compute_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_verify_round_trip(self):
        verifier, challenge = generate_pkce_pair()
        assert verify_code_challenge(verifier, challenge) is True
        assert verify_code_challenge("wrong-verifier", challenge) is False

    def test_plain_method_unsupported(self):
        verifier = generate_code_verifier()
        assert verify_code_challenge(verifier, verifier, "plain") is False

    @pytest.mark.parametrize("verifier, challenge", [(None, "x"), ("x", None), ("", "")])
    def test_missing_inputs(self, verifier, challenge):
        assert verify_code_challenge(verifier, challenge) is False
