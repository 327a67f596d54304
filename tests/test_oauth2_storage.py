# Tests for OAuth2 client, code and consent storage.
# Created: 2026-10-19

import json
import os
from datetime import UTC, datetime, timedelta

import pytest

from ihub_oauth.api.oauth2.models import ClientType
from ihub_oauth.api.oauth2.storage import CodeStore, ConsentStore, FileClientStore


def _issue(store, **overrides):
    binding = {
        "client_id": "app1",
        "redirect_uri": "https://app1.example/cb",
        "user_id": "user-123",
        "scopes": ["openid"],
    }
    binding.update(overrides)
    return store.issue(**binding)


class TestCodeStore:
    def test_code_is_64_hex_chars(self):
        code = _issue(CodeStore()).code
        assert len(code) == 64
        int(code, 16)

    def test_codes_are_unique(self):
        store = CodeStore()
        assert len({_issue(store).code for _ in range(50)}) == 50

    def test_consume_returns_binding_once(self):
        store = CodeStore()
        issued = _issue(store, nonce="n1", code_challenge="ch", code_challenge_method="S256")
        bound = store.consume(issued.code)
        assert bound.user_id == "user-123"
        assert bound.nonce == "n1"
        assert bound.code_challenge == "ch"
        assert store.consume(issued.code) is None

    def test_unknown_code(self):
        assert CodeStore().consume("nope") is None

    def test_expired_code_rejected(self):
        store = CodeStore(ttl=timedelta(minutes=10))
        issued = _issue(store)
        issued.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        assert store.consume(issued.code) is None

    def test_ttl_applied(self):
        store = CodeStore(ttl=timedelta(minutes=10))
        issued = _issue(store)
        assert issued.expires_at - issued.created_at == timedelta(minutes=10)

    def test_cleanup_only_removes_expired(self):
        store = CodeStore()
        live = _issue(store)
        stale = _issue(store)
        stale.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        assert store.cleanup() == 1
        assert store.consume(live.code) is not None

    def test_issue_sweeps_expired_codes(self):
        store = CodeStore(sweep_interval=timedelta(0))
        stale = _issue(store)
        stale.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        fresh = _issue(store)
        assert len(store) == 1
        assert store.consume(fresh.code) is not None

    def test_no_sweep_before_interval(self):
        store = CodeStore(sweep_interval=timedelta(hours=1))
        stale = _issue(store)
        stale.expires_at = datetime.now(UTC) - timedelta(seconds=1)
        _issue(store)
        assert len(store) == 2


class TestConsentStore:
    @pytest.fixture
    def store(self, tmp_path):
        return ConsentStore(tmp_path / "consent.json", ttl_days=90)

    def test_no_consent(self, store):
        assert store.has_consent("app1", "u1", ["openid"]) is False

    def test_grant_then_has(self, store):
        store.grant("app1", "u1", ["openid", "email"])
        assert store.has_consent("app1", "u1", ["openid", "email"]) is True

    def test_subset_is_covered(self, store):
        store.grant("app1", "u1", ["openid", "email", "profile"])
        assert store.has_consent("app1", "u1", ["email"]) is True

    def test_additional_scope_not_covered(self, store):
        store.grant("app1", "u1", ["openid"])
        assert store.has_consent("app1", "u1", ["openid", "email"]) is False

    def test_scoped_to_client_and_user(self, store):
        store.grant("app1", "u1", ["openid"])
        assert store.has_consent("app2", "u1", ["openid"]) is False
        assert store.has_consent("app1", "u2", ["openid"]) is False

    def test_regrant_overwrites(self, store):
        store.grant("app1", "u1", ["openid", "email"])
        store.grant("app1", "u1", ["openid"])
        assert store.has_consent("app1", "u1", ["email"]) is False

    def test_zero_day_ttl_is_expired(self, store):
        store.grant("app1", "u1", ["openid"], ttl_days=0)
        assert store.has_consent("app1", "u1", ["openid"]) is False

    def test_expired_record_ignored_and_pruned(self, store, tmp_path):
        path = tmp_path / "consent.json"
        past = datetime.now(UTC) - timedelta(days=1)
        path.write_text(
            json.dumps(
                {
                    "consents": {
                        "app1:u1": {
                            "clientId": "app1",
                            "userId": "u1",
                            "scopes": ["openid"],
                            "grantedAt": (past - timedelta(days=90)).isoformat(),
                            "expiresAt": past.isoformat(),
                        }
                    }
                }
            )
        )
        assert store.has_consent("app1", "u1", ["openid"]) is False
        store.grant("app2", "u1", ["openid"])
        assert "app1:u1" not in json.loads(path.read_text())["consents"]

    def test_written_entries_use_camel_case(self, store, tmp_path):
        store.grant("app1", "u1", ["openid", "email"])
        entry = json.loads((tmp_path / "consent.json").read_text())["consents"]["app1:u1"]
        assert set(entry) == {"clientId", "userId", "scopes", "grantedAt", "expiresAt"}
        assert entry["clientId"] == "app1"
        assert entry["scopes"] == ["openid", "email"]

    def test_naive_timestamps_read_as_utc(self, store, tmp_path):
        future = datetime.now(UTC).replace(tzinfo=None) + timedelta(days=30)
        (tmp_path / "consent.json").write_text(
            json.dumps(
                {
                    "consents": {
                        "app1:u1": {
                            "clientId": "app1",
                            "userId": "u1",
                            "scopes": ["openid"],
                            "grantedAt": (future - timedelta(days=90)).isoformat(),
                            "expiresAt": future.isoformat(),
                        }
                    }
                }
            )
        )
        assert store.has_consent("app1", "u1", ["openid"]) is True
        store.grant("app2", "u1", ["openid"])
        assert "app1:u1" in json.loads((tmp_path / "consent.json").read_text())["consents"]

    @pytest.mark.parametrize("expires_at", ["not-a-date", None, 12345])
    def test_unreadable_expiry_treated_as_expired(self, store, tmp_path, expires_at):
        path = tmp_path / "consent.json"
        path.write_text(
            json.dumps(
                {
                    "consents": {
                        "app1:u1": {
                            "clientId": "app1",
                            "scopes": ["openid"],
                            "expiresAt": expires_at,
                        },
                        "app3:u1": "garbage",
                    }
                }
            )
        )
        assert store.has_consent("app1", "u1", ["openid"]) is False
        assert store.has_consent("app3", "u1", ["openid"]) is False
        store.grant("app2", "u1", ["openid"])
        assert set(json.loads(path.read_text())["consents"]) == {"app2:u1"}

    def test_revoke(self, store):
        store.grant("app1", "u1", ["openid"])
        assert store.revoke("app1", "u1") is True
        assert store.has_consent("app1", "u1", ["openid"]) is False
        assert store.revoke("app1", "u1") is False

    def test_survives_reload(self, tmp_path):
        path = tmp_path / "consent.json"
        ConsentStore(path).grant("app1", "u1", ["openid"])
        assert ConsentStore(path).has_consent("app1", "u1", ["openid"]) is True

    def test_corrupt_file_means_no_consent(self, tmp_path):
        path = tmp_path / "consent.json"
        path.write_text("{not json")
        assert ConsentStore(path).has_consent("app1", "u1", ["openid"]) is False


class TestFileClientStore:
    def _write(self, path, clients):
        path.write_text(json.dumps({"clients": clients}))

    def test_loads_camel_case_entries(self, tmp_path):
        path = tmp_path / "oauth-clients.json"
        self._write(
            path,
            {
                "spa": {
                    "clientId": "spa",
                    "name": "SPA",
                    "clientType": "public",
                    "redirectUris": ["https://spa.example/cb"],
                    "grantTypes": ["authorization_code"],
                    "trusted": True,
                    "consentRequired": False,
                    "active": True,
                }
            },
        )
        client = FileClientStore(path).get_client("spa")
        assert client.client_type is ClientType.PUBLIC
        assert client.redirect_uris == ["https://spa.example/cb"]
        assert client.trusted is True
        assert client.consent_required is False
        assert client.supports_authorization_code()

    def test_defaults(self, tmp_path):
        path = tmp_path / "oauth-clients.json"
        self._write(path, {"bare": {"name": "Bare"}})
        client = FileClientStore(path).get_client("bare")
        assert client.client_id == "bare"
        assert client.client_type is ClientType.CONFIDENTIAL
        assert client.consent_required is True
        assert client.active is True
        assert client.supports_authorization_code() is False

    def test_missing_file(self, tmp_path):
        assert FileClientStore(tmp_path / "absent.json").get_client("x") is None

    def test_reloads_on_change(self, tmp_path):
        path = tmp_path / "oauth-clients.json"
        self._write(path, {"a": {"name": "A"}})
        store = FileClientStore(path)
        assert store.get_client("b") is None

        self._write(path, {"a": {"name": "A"}, "b": {"name": "B"}})
        stat = path.stat()
        os.utime(path, (stat.st_atime, stat.st_mtime + 5))
        assert store.get_client("b").name == "B"

    def test_invalid_client_type_yields_empty_registry(self, tmp_path):
        path = tmp_path / "oauth-clients.json"
        self._write(path, {"a": {"name": "A", "clientType": "weird"}})
        assert FileClientStore(path).get_client("a") is None
