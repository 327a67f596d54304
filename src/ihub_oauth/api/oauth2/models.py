# OAuth2 authorization data models.
# Created: 2026-10-19

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum

AUTHORIZATION_CODE_GRANT = "authorization_code"
DEFAULT_SCOPES = ["openid"]


class ClientType(str, Enum):
    PUBLIC = "public"
    CONFIDENTIAL = "confidential"


@dataclass
class OAuthClient:
    """Registered OAuth2 client (read-only to the authorize flow)."""

    client_id: str
    name: str
    client_type: ClientType = ClientType.CONFIDENTIAL
    redirect_uris: list[str] = field(default_factory=list)
    grant_types: list[str] = field(default_factory=list)
    scopes: list[str] = field(default_factory=list)
    trusted: bool = False
    consent_required: bool = True
    active: bool = True

    @property
    def is_public(self) -> bool:
        return self.client_type == ClientType.PUBLIC

    def supports_authorization_code(self) -> bool:
        return AUTHORIZATION_CODE_GRANT in self.grant_types


@dataclass
class AuthorizationRequest:
    """An in-flight /authorize request, kept in the HTTP session while deferred."""

    client_id: str
    redirect_uri: str
    response_type: str = "code"
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))
    state: str = ""
    code_challenge: str = ""
    code_challenge_method: str = ""
    nonce: str = ""

    @property
    def scope(self) -> str:
        return " ".join(self.scopes)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> AuthorizationRequest:
        return cls(
            client_id=data["client_id"],
            redirect_uri=data["redirect_uri"],
            response_type=data.get("response_type", "code"),
            scopes=list(data.get("scopes") or DEFAULT_SCOPES),
            state=data.get("state", ""),
            code_challenge=data.get("code_challenge", ""),
            code_challenge_method=data.get("code_challenge_method", ""),
            nonce=data.get("nonce", ""),
        )


def parse_scopes(scope: str | None) -> list[str]:
    """Split a space-delimited scope string, defaulting to ``openid``."""
    scopes = [s for s in (scope or "").split(" ") if s]
    return scopes or list(DEFAULT_SCOPES)


@dataclass
class Principal:
    """The authenticated user behind a verified session credential."""

    sub: str
    email: str = ""
    name: str = ""
    groups: list[str] = field(default_factory=list)


@dataclass
class AuthorizationCode:
    """Single-use authorization code bound to the request that produced it."""

    code: str
    client_id: str
    redirect_uri: str
    user_id: str
    expires_at: datetime
    user_email: str = ""
    user_name: str = ""
    user_groups: list[str] = field(default_factory=list)
    scopes: list[str] = field(default_factory=list)
    code_challenge: str = ""
    code_challenge_method: str = ""
    nonce: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


@dataclass
class ConsentRecord:
    """A remembered consent grant for one (client, user) pair."""

    client_id: str
    user_id: str
    scopes: list[str]
    granted_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at

    def covers(self, scopes: list[str]) -> bool:
        return set(scopes).issubset(self.scopes)
