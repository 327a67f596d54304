# OAuth2 schemas.
# Created: 2026-10-19

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field


class DecisionForm(BaseModel):
    """Consent form posted to /oauth/authorize/decision."""

    model_config = {"populate_by_name": True}

    csrf: str | None = Field(default=None, alias="_csrf")
    client_id: str | None = None
    redirect_uri: str | None = None
    state: str | None = None
    scope: str | None = None
    nonce: str | None = None
    decision: str | None = None

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> DecisionForm:
        """Build from submitted form data, ignoring file parts."""
        fields = {k: v for k, v in form.items() if isinstance(v, str)}
        return cls.model_validate(fields)
