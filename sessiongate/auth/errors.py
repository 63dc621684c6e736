from __future__ import annotations


class AuthError(Exception):
    """Base class for every failure raised by the OAuth login flow."""


class AuthenticationFailed(AuthError):
    """
    A presented token could not be accepted.

    Callers should catch this class only. The subclasses exist so the reason can be
    logged server-side; it must never be reflected back to the client.
    """


class TokenInvalid(AuthenticationFailed):
    """Bad signature, malformed encoding/structure, or wrong purpose."""


class TokenExpired(AuthenticationFailed):
    """Signature is fine but the expiry instant has passed."""


class StateMismatch(AuthenticationFailed):
    """OAuth `state` returned by the provider was absent or did not verify."""


class ExchangeFailed(AuthError):
    """Authorization code could not be exchanged for an access token."""


class IdentityUnavailable(AuthError):
    """Provider identity endpoint failed (network, API error, missing scope)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def forbidden(self) -> bool:
        return self.status_code in (401, 403)


class NoPrimaryVerifiedEmail(AuthError):
    """Zero, or more than one, email entry is both primary and verified."""


class DomainNotAllowed(AuthError):
    """Email domain is not in the configured allow-list."""


class IssuerFailure(AuthError):
    """Signing a token failed; fatal for the current request."""
