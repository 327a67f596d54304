# Consent decision: skip, reuse a remembered grant, or ask the user.
# Created: 2026-10-19

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from ihub_oauth.api.oauth2.models import OAuthClient


class ConsentDecision(str, Enum):
    BYPASS = "bypass"  # trusted / first-party client, never prompts
    REMEMBERED = "remembered"  # user already approved these scopes
    PROMPT = "prompt"  # render the consent screen


def evaluate_consent(
    client: OAuthClient, has_remembered_consent: Callable[[], bool]
) -> ConsentDecision:
    """Decide how the authorize request proceeds once a user is signed in.

    *has_remembered_consent* is only called when the client is not bypassed,
    so trusted clients never touch the consent store.
    """
    if client.trusted or not client.consent_required:
        return ConsentDecision.BYPASS
    if has_remembered_consent():
        return ConsentDecision.REMEMBERED
    return ConsentDecision.PROMPT
