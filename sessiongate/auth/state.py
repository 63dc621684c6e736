"""
CSRF protection for the OAuth `state` parameter.

The random value is wrapped in a short-lived signed token, so the callback can check
that it belongs to a login this server started without keeping any lookup table.
"""

from __future__ import annotations

from typing import Optional

from sessiongate.auth.errors import AuthenticationFailed, StateMismatch
from sessiongate.auth.tokens import AUDIENCE_STATE, Authenticator
from sessiongate.auth.util import random_string

STATE_TTL_SECONDS = 10 * 60
STATE_ENTROPY_BYTES = 32


def new_state(authenticator: Authenticator) -> str:
    """Mint a signed state value. Raises IssuerFailure if signing fails."""
    csrf = random_string(STATE_ENTROPY_BYTES)
    return authenticator.issue(csrf, STATE_TTL_SECONDS, audience=AUDIENCE_STATE)


def validate_state(authenticator: Authenticator, state: Optional[str]) -> str:
    """Return the random value embedded in `state`, or raise StateMismatch."""
    if not state:
        raise StateMismatch("Missing OAuth state")
    try:
        return authenticator.verify(state, audience=AUDIENCE_STATE)
    except AuthenticationFailed as e:
        raise StateMismatch(f"Invalid OAuth state: {e}") from e
