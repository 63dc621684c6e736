from __future__ import annotations

from typing import Any, Dict, List, Protocol
from urllib.parse import urlencode

import requests

from sessiongate.auth.config import OAuth2Config
from sessiongate.auth.errors import ExchangeFailed, IdentityUnavailable, NoPrimaryVerifiedEmail
from sessiongate.auth.models import Principal, ProviderEmail

REQUEST_TIMEOUT_SECONDS = 10


class IdentityProvider(Protocol):
    """What the login flow needs from an OAuth2 identity provider."""

    def authorize_url(self, state: str) -> str:
        ...

    def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for an access token."""
        ...

    def list_emails(self, access_token: str) -> List[ProviderEmail]:
        ...


class OAuth2Provider:
    """
    Authorization-code client for a provider that exposes a "list emails" API.

    The endpoint URLs come from `OAuth2Config.endpoint`; GitHub is the default.
    """

    def __init__(self, cfg: OAuth2Config, *, timeout: float = REQUEST_TIMEOUT_SECONDS) -> None:
        self.cfg = cfg
        self.timeout = timeout

    def authorize_url(self, state: str) -> str:
        """
        Build the provider authorization URL.

        `access_type=online` asks for a token that is only used during this request.
        """
        params = {
            "client_id": self.cfg.client_id,
            "response_type": "code",
            "scope": " ".join(self.cfg.scopes),
            "state": state,
            "access_type": "online",
        }
        if self.cfg.redirect_url:
            params["redirect_uri"] = self.cfg.redirect_url
        return f"{self.cfg.endpoint.auth_url}?{urlencode(params)}"

    def exchange_code(self, code: str) -> str:
        if not code:
            raise ExchangeFailed("Missing authorization code")

        payload = {
            "client_id": self.cfg.client_id,
            "client_secret": self.cfg.client_secret,
            "grant_type": "authorization_code",
            "code": code,
        }
        if self.cfg.redirect_url:
            payload["redirect_uri"] = self.cfg.redirect_url

        try:
            r = requests.post(
                self.cfg.endpoint.token_url,
                data=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ExchangeFailed(f"Token endpoint unreachable: {e.__class__.__name__}") from e

        if r.status_code >= 400:
            # Avoid leaking sensitive info; include minimal context.
            raise ExchangeFailed(f"Token exchange failed (status={r.status_code})")
        try:
            data = r.json()
        except ValueError as e:
            raise ExchangeFailed("Invalid token response") from e
        if not isinstance(data, dict):
            raise ExchangeFailed("Invalid token response")

        # GitHub reports bad/expired codes as 200 with an `error` field.
        if data.get("error"):
            raise ExchangeFailed(f"Token exchange rejected: {data.get('error')}")
        access_token = str(data.get("access_token") or "").strip()
        if not access_token:
            raise ExchangeFailed("Token response missing access_token")
        return access_token

    def list_emails(self, access_token: str) -> List[ProviderEmail]:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        try:
            r = requests.get(self.cfg.endpoint.emails_url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise IdentityUnavailable(f"Email endpoint unreachable: {e.__class__.__name__}") from e

        if r.status_code in (401, 403):
            raise IdentityUnavailable(
                f"OAuth access to email address forbidden (status={r.status_code})",
                status_code=r.status_code,
            )
        if r.status_code >= 400:
            raise IdentityUnavailable(f"Unable to retrieve emails (status={r.status_code})", status_code=r.status_code)

        try:
            data: Any = r.json()
        except ValueError as e:
            raise IdentityUnavailable("Invalid email list response") from e
        if not isinstance(data, list):
            raise IdentityUnavailable("Invalid email list response")
        return [ProviderEmail.from_api(item) for item in data if isinstance(item, dict)]


def primary_email(emails: List[ProviderEmail]) -> Principal:
    """
    Select the single email that is both primary and verified.

    Zero or several candidates is a failure; there is no fallback to a
    merely-verified or first-listed address.
    """
    candidates = [e for e in emails if e.usable]
    if not candidates:
        raise NoPrimaryVerifiedEmail("No primary verified email address")
    if len(candidates) > 1:
        raise NoPrimaryVerifiedEmail(f"Ambiguous primary verified email ({len(candidates)} candidates)")
    return Principal(candidates[0].email)


def describe(cfg: OAuth2Config) -> Dict[str, str]:
    """Non-secret provider details for startup logs."""
    return {
        "auth_url": cfg.endpoint.auth_url,
        "scopes": " ".join(cfg.scopes),
        "client_id": cfg.client_id or "<unset>",
    }
