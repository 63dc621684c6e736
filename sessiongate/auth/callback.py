"""
OAuth callback as an explicit state machine.

    AWAITING_STATE -> STATE_VALIDATED -> CODE_EXCHANGED -> IDENTITY_FETCHED -> SESSION_ISSUED

Any step may move to FAILED instead. `run_callback` performs no HTTP response work;
it returns a `CallbackResult` that the route layer turns into a redirect (and a
cookie, on success) and logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sessiongate.auth.config import AuthConfig
from sessiongate.auth.errors import AuthError, DomainNotAllowed, IdentityUnavailable
from sessiongate.auth.models import Principal
from sessiongate.auth.provider import IdentityProvider, primary_email
from sessiongate.auth.state import validate_state
from sessiongate.auth.tokens import AUDIENCE_SESSION, Authenticator
from sessiongate.auth.util import email_domain


class CallbackState(str, Enum):
    AWAITING_STATE = "awaiting_state"
    STATE_VALIDATED = "state_validated"
    CODE_EXCHANGED = "code_exchanged"
    IDENTITY_FETCHED = "identity_fetched"
    SESSION_ISSUED = "session_issued"
    FAILED = "failed"


# Log line used for each state a failure can leave from.
FAILURE_MESSAGES = {
    CallbackState.AWAITING_STATE: "Invalid OAuth state received",
    CallbackState.STATE_VALIDATED: "Unable to exchange code for token",
    CallbackState.CODE_EXCHANGED: "Unable to retrieve primary email",
    CallbackState.IDENTITY_FETCHED: "Unable to create cookie auth token",
}


@dataclass(frozen=True)
class CallbackResult:
    state: CallbackState
    redirect_url: str
    principal: Optional[Principal] = None
    session_token: Optional[str] = None
    failed_at: Optional[CallbackState] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.state is CallbackState.SESSION_ISSUED

    @property
    def failure_message(self) -> str:
        if self.failed_at is None:
            return ""
        if isinstance(self.error, IdentityUnavailable) and self.error.forbidden:
            return "OAuth access to email address forbidden"
        return FAILURE_MESSAGES.get(self.failed_at, "OAuth callback failed")


class CallbackFlow:
    """One callback request. Not shared between requests."""

    def __init__(self, cfg: AuthConfig, authenticator: Authenticator, provider: IdentityProvider) -> None:
        self.cfg = cfg
        self.authenticator = authenticator
        self.provider = provider
        self.state = CallbackState.AWAITING_STATE
        self.access_token: Optional[str] = None
        self.principal: Optional[Principal] = None
        self.session_token: Optional[str] = None

    def validate(self, state: Optional[str]) -> None:
        validate_state(self.authenticator, state)
        self.state = CallbackState.STATE_VALIDATED

    def exchange(self, code: Optional[str]) -> None:
        self.access_token = self.provider.exchange_code(code or "")
        self.state = CallbackState.CODE_EXCHANGED

    def fetch_identity(self) -> None:
        emails = self.provider.list_emails(self.access_token or "")
        principal = primary_email(emails)
        if self.cfg.allowed_domains and email_domain(principal) not in self.cfg.allowed_domains:
            raise DomainNotAllowed(f"Account domain not allowed: {email_domain(principal)}")
        self.principal = principal
        self.state = CallbackState.IDENTITY_FETCHED

    def issue_session(self) -> None:
        self.session_token = self.authenticator.issue(
            self.principal or "",
            self.cfg.cookie.duration_seconds,
            audience=AUDIENCE_SESSION,
        )
        self.state = CallbackState.SESSION_ISSUED

    def fail(self, error: AuthError) -> CallbackResult:
        failed_at = self.state
        self.state = CallbackState.FAILED
        return CallbackResult(
            state=CallbackState.FAILED,
            redirect_url=self.cfg.failure_url,
            failed_at=failed_at,
            error=error,
        )

    def run(self, *, state: Optional[str], code: Optional[str]) -> CallbackResult:
        try:
            self.validate(state)
            self.exchange(code)
            self.fetch_identity()
            self.issue_session()
        except AuthError as e:
            return self.fail(e)
        return CallbackResult(
            state=self.state,
            redirect_url=self.cfg.success_url,
            principal=self.principal,
            session_token=self.session_token,
        )


def run_callback(
    cfg: AuthConfig,
    authenticator: Authenticator,
    provider: IdentityProvider,
    *,
    state: Optional[str],
    code: Optional[str],
) -> CallbackResult:
    return CallbackFlow(cfg, authenticator, provider).run(state=state, code=code)
