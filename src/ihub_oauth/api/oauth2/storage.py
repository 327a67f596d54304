# OAuth2 client, code and consent storage.
# Created: 2026-10-19
#
# Clients and consent grants are JSON-file backed. Authorization codes stay
# in memory (short-lived, single-use).

from __future__ import annotations

import json
import logging
import os
import secrets
import tempfile
import threading
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol

from ihub_oauth.api.oauth2.models import (
    AuthorizationCode,
    ClientType,
    ConsentRecord,
    OAuthClient,
)
from ihub_oauth.config import DEFAULT_CODE_TTL_MINUTES, DEFAULT_CONSENT_MEMORY_DAYS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Interfaces consumed by the authorize flow
# ---------------------------------------------------------------------------


class ClientLookup(Protocol):
    def get_client(self, client_id: str) -> OAuthClient | None: ...


class CodeStoreProtocol(Protocol):
    def issue(self, **binding) -> AuthorizationCode: ...

    def consume(self, code: str) -> AuthorizationCode | None: ...


class ConsentStoreProtocol(Protocol):
    def has_consent(self, client_id: str, user_id: str, scopes: list[str]) -> bool: ...

    def grant(
        self, client_id: str, user_id: str, scopes: list[str], ttl_days: int | None = None
    ) -> ConsentRecord: ...


def _atomic_write_json(path: Path, data: object) -> None:
    """Write *data* to a temp file next to *path* and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    try:
        path.chmod(0o600)
    except OSError:
        pass


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


def client_from_entry(client_id: str, entry: dict) -> OAuthClient:
    """Build an OAuthClient from a camelCase JSON entry."""
    return OAuthClient(
        client_id=entry.get("clientId") or client_id,
        name=entry.get("name") or client_id,
        client_type=ClientType(entry.get("clientType", ClientType.CONFIDENTIAL.value)),
        redirect_uris=list(entry.get("redirectUris") or []),
        grant_types=list(entry.get("grantTypes") or []),
        scopes=list(entry.get("scopes") or []),
        trusted=bool(entry.get("trusted", False)),
        consent_required=bool(entry.get("consentRequired", True)),
        active=bool(entry.get("active", True)),
    )


class ClientStore:
    """In-memory client registry."""

    def __init__(self, clients: list[OAuthClient] | None = None):
        self._clients: dict[str, OAuthClient] = {c.client_id: c for c in clients or []}

    def add(self, client: OAuthClient) -> None:
        self._clients[client.client_id] = client

    def get_client(self, client_id: str) -> OAuthClient | None:
        return self._clients.get(client_id)


class FileClientStore(ClientStore):
    """Client registry read from ``oauth-clients.json``.

    Layout: ``{"clients": {"<clientId>": {...}}}``. The file is re-read when
    its mtime changes, so admin edits apply without a restart.
    """

    def __init__(self, path: Path):
        super().__init__()
        self._path = path
        self._mtime: float | None = None
        self._lock = threading.Lock()

    def _reload(self) -> None:
        try:
            mtime = self._path.stat().st_mtime
        except FileNotFoundError:
            if self._mtime is not None or self._clients:
                logger.warning("OAuth clients file %s disappeared", self._path)
            self._clients, self._mtime = {}, None
            return
        if mtime == self._mtime:
            return
        try:
            data = json.loads(self._path.read_text())
            entries = data.get("clients") or {}
            self._clients = {cid: client_from_entry(cid, e) for cid, e in entries.items()}
            self._mtime = mtime
            logger.debug("Loaded %d OAuth clients from %s", len(self._clients), self._path)
        except (json.JSONDecodeError, OSError, AttributeError, ValueError) as exc:
            logger.error("Failed to load OAuth clients from %s: %s", self._path, exc)
            self._clients, self._mtime = {}, None

    def get_client(self, client_id: str) -> OAuthClient | None:
        with self._lock:
            self._reload()
            return self._clients.get(client_id)


# ---------------------------------------------------------------------------
# Authorization codes
# ---------------------------------------------------------------------------


class CodeStore:
    """In-memory authorization code store with atomic single-use consumption.

    Codes are redeemed elsewhere, so expired ones are swept from ``store`` at
    most once per *sweep_interval*.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=DEFAULT_CODE_TTL_MINUTES),
        sweep_interval: timedelta = timedelta(minutes=1),
    ):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self._codes: dict[str, AuthorizationCode] = {}
        self._lock = threading.Lock()
        self._next_sweep = datetime.now(UTC) + sweep_interval

    @staticmethod
    def generate_code() -> str:
        """Return a 256-bit random code as 64 hex characters."""
        return secrets.token_hex(32)

    def issue(self, **binding) -> AuthorizationCode:
        """Create and store a fresh code bound to *binding* (AuthorizationCode fields)."""
        now = datetime.now(UTC)
        auth_code = AuthorizationCode(
            code=self.generate_code(),
            created_at=now,
            expires_at=now + self.ttl,
            **binding,
        )
        self.store(auth_code)
        return auth_code

    def store(self, auth_code: AuthorizationCode) -> None:
        now = datetime.now(UTC)
        with self._lock:
            if now >= self._next_sweep:
                self._drop_expired(now)
            self._codes[auth_code.code] = auth_code

    def _drop_expired(self, now: datetime) -> int:
        expired = [k for k, v in self._codes.items() if v.is_expired(now)]
        for k in expired:
            del self._codes[k]
        self._next_sweep = now + self.sweep_interval
        return len(expired)

    def consume(self, code: str) -> AuthorizationCode | None:
        """Return the code's binding and invalidate it. Unknown or expired → None."""
        with self._lock:
            auth_code = self._codes.pop(code, None)
        if auth_code is None or auth_code.is_expired():
            return None
        return auth_code

    def cleanup(self) -> int:
        """Remove expired codes. Returns the number removed."""
        with self._lock:
            return self._drop_expired(datetime.now(UTC))

    def __len__(self) -> int:
        return len(self._codes)


# ---------------------------------------------------------------------------
# Consent
# ---------------------------------------------------------------------------


def _consent_key(client_id: str, user_id: str) -> str:
    return f"{client_id}:{user_id}"


def _parse_expiry(value: object) -> datetime | None:
    """Parse a stored timestamp. Naive values are read as UTC; junk gives None."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class ConsentStore:
    """Remembered consent grants, persisted to ``oauth-consent.json``.

    Layout: ``{"consents": {"<clientId>:<userId>": {"clientId", "userId",
    "scopes", "grantedAt", "expiresAt"}}}``. Expired or unreadable entries are
    pruned on every write.
    """

    def __init__(self, path: Path, ttl_days: int = DEFAULT_CONSENT_MEMORY_DAYS):
        self._path = path
        self.ttl_days = ttl_days
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
            return dict(data.get("consents") or {})
        except (json.JSONDecodeError, OSError, AttributeError, TypeError, ValueError) as exc:
            logger.warning("Failed to load consent store %s: %s", self._path, exc)
            return {}

    def _save(self, consents: dict[str, dict]) -> None:
        _atomic_write_json(self._path, {"consents": consents})

    @staticmethod
    def _record(client_id: str, user_id: str, entry: dict) -> ConsentRecord | None:
        expires_at = _parse_expiry(entry.get("expiresAt"))
        if expires_at is None:
            return None
        return ConsentRecord(
            client_id=entry.get("clientId") or client_id,
            user_id=entry.get("userId") or user_id,
            scopes=list(entry.get("scopes") or []),
            granted_at=_parse_expiry(entry.get("grantedAt")) or expires_at,
            expires_at=expires_at,
        )

    @staticmethod
    def _live_entry(entry: object, now: datetime) -> bool:
        if not isinstance(entry, dict):
            return False
        expires_at = _parse_expiry(entry.get("expiresAt"))
        return expires_at is not None and expires_at > now

    def get(self, client_id: str, user_id: str) -> ConsentRecord | None:
        """Return the non-expired record for the pair, if any."""
        entry = self._load().get(_consent_key(client_id, user_id))
        if not isinstance(entry, dict):
            return None
        record = self._record(client_id, user_id, entry)
        if record is None:
            logger.warning("Ignoring malformed consent entry for client=%s", client_id)
            return None
        return None if record.is_expired() else record

    def has_consent(self, client_id: str, user_id: str, scopes: list[str]) -> bool:
        """True if a live grant covers every scope in *scopes*."""
        record = self.get(client_id, user_id)
        return record is not None and record.covers(scopes)

    def grant(
        self,
        client_id: str,
        user_id: str,
        scopes: list[str],
        ttl_days: int | None = None,
    ) -> ConsentRecord:
        """Store (or overwrite) the grant for the pair, resetting its expiry."""
        now = datetime.now(UTC)
        days = self.ttl_days if ttl_days is None else ttl_days
        record = ConsentRecord(
            client_id=client_id,
            user_id=user_id,
            scopes=list(scopes),
            granted_at=now,
            expires_at=now + timedelta(days=days),
        )
        with self._lock:
            consents = self._load()
            consents[_consent_key(client_id, user_id)] = {
                "clientId": record.client_id,
                "userId": record.user_id,
                "scopes": record.scopes,
                "grantedAt": record.granted_at.isoformat(),
                "expiresAt": record.expires_at.isoformat(),
            }
            consents = {k: v for k, v in consents.items() if self._live_entry(v, now)}
            self._save(consents)
        logger.info(
            "Consent granted | client=%s | user=%s | scopes=%s",
            client_id,
            user_id,
            ",".join(scopes),
        )
        return record

    def revoke(self, client_id: str, user_id: str) -> bool:
        """Forget the grant for the pair. Returns True if one existed."""
        key = _consent_key(client_id, user_id)
        with self._lock:
            consents = self._load()
            if key not in consents:
                return False
            del consents[key]
            self._save(consents)
        logger.info("Consent revoked | client=%s | user=%s", client_id, user_id)
        return True
