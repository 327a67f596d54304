# Settings for the OAuth authorization endpoint.
# Created: 2026-10-19
#
# Values come from (highest first): explicit kwargs, the JSON config file
# at ~/.ihub-oauth/config.json, IHUB_OAUTH_* environment variables, defaults.

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Fallbacks used when an operator leaves the TTLs unset
DEFAULT_CONSENT_MEMORY_DAYS = 90
DEFAULT_CODE_TTL_MINUTES = 10


def get_config_dir() -> Path:
    """Return the configuration directory, honouring IHUB_OAUTH_CONFIG_DIR."""
    override = os.environ.get("IHUB_OAUTH_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ihub-oauth"


def get_config_path() -> Path:
    return get_config_dir() / "config.json"


class Settings(BaseSettings):
    """Runtime configuration for the authorization endpoint."""

    model_config = SettingsConfigDict(env_prefix="IHUB_OAUTH_", extra="ignore")

    oauth_enabled: bool = True

    # Backing files (default to the config dir)
    clients_file: Path | None = None
    consent_file: Path | None = None

    # Lifetimes
    consent_memory_days: int = Field(default=DEFAULT_CONSENT_MEMORY_DAYS, ge=0)
    code_ttl_minutes: int = Field(default=DEFAULT_CODE_TTL_MINUTES, gt=0)
    session_ttl_minutes: int = Field(default=30, gt=0)

    # Cookies
    session_cookie_name: str = "authToken"
    oauth_session_cookie_name: str = "oauth_sid"
    cookie_secure: bool = False

    # Session credential verification (HS256 JWT issued by the login service)
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"

    # Routing
    base_path: str = ""
    login_path: str = "/login"

    cors_allowed_origins: list[str] = Field(default_factory=list)

    @property
    def resolved_clients_file(self) -> Path:
        return self.clients_file or get_config_dir() / "oauth-clients.json"

    @property
    def resolved_consent_file(self) -> Path:
        return self.consent_file or get_config_dir() / "oauth-consent.json"

    @classmethod
    def load(cls) -> Settings:
        """Load settings from the JSON config file, falling back to env/defaults."""
        path = get_config_path()
        data: dict = {}
        if path.exists():
            try:
                data = json.loads(path.read_text())
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to read config from %s: %s", path, exc)
                data = {}
        return cls(**data)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, loaded on first use.

    Call ``get_settings.cache_clear()`` after editing the config file.
    """
    return Settings.load()
