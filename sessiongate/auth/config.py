from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

DEFAULT_COOKIE_NAME = "session"
DEFAULT_COOKIE_DURATION_SECONDS = 30 * 24 * 60 * 60  # 30 days
DEFAULT_SCOPES: Tuple[str, ...] = ("user:email",)


@dataclass(frozen=True)
class OAuth2Endpoint:
    auth_url: str
    token_url: str
    emails_url: str


GITHUB_ENDPOINT = OAuth2Endpoint(
    auth_url="https://github.com/login/oauth/authorize",
    token_url="https://github.com/login/oauth/access_token",
    emails_url="https://api.github.com/user/emails",
)

PROVIDER_ENDPOINTS: Dict[str, OAuth2Endpoint] = {
    "github": GITHUB_ENDPOINT,
}


@dataclass(frozen=True)
class OAuth2Config:
    client_id: str
    client_secret: str
    scopes: Tuple[str, ...]
    endpoint: OAuth2Endpoint
    redirect_url: Optional[str] = None


@dataclass(frozen=True)
class CookieConfig:
    name: str = DEFAULT_COOKIE_NAME
    duration_seconds: int = DEFAULT_COOKIE_DURATION_SECONDS
    secure: bool = False


@dataclass(frozen=True)
class AuthConfig:
    # Provider name used in route paths: /oauth/<provider>/...
    provider: str
    oauth: OAuth2Config

    # Redirect targets after the OAuth dance
    success_url: str
    failure_url: str

    # Session configuration
    session_secret: Optional[str]  # Required for token signing
    cookie: CookieConfig

    # Optional domain enforcement for the verified email
    allowed_domains: Tuple[str, ...] = ()

    @property
    def oauth_enabled(self) -> bool:
        """OAuth is usable once client credentials and a signing secret are configured."""
        return bool(self.oauth.client_id and self.oauth.client_secret and self.session_secret)


def _parse_csv(value: str, *, lower: bool = False) -> List[str]:
    items = [x.strip() for x in (value or "").split(",")]
    if lower:
        items = [x.lower() for x in items]
    return [x for x in items if x]


def _parse_bool(value: str) -> Optional[bool]:
    v = (value or "").strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return None


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    The result is cached and frozen; it is read concurrently by every request.
    Call `load_auth_config.cache_clear()` after changing the environment (tests).
    """
    provider = (os.getenv("OAUTH_PROVIDER", "") or "github").strip().lower()
    endpoint = PROVIDER_ENDPOINTS.get(provider)
    if endpoint is None:
        raise ValueError(f"Unsupported OAuth provider: {provider}")
    # Per-URL overrides (GitHub Enterprise, local mock provider).
    endpoint = OAuth2Endpoint(
        auth_url=(os.getenv("OAUTH_AUTH_URL", "") or "").strip() or endpoint.auth_url,
        token_url=(os.getenv("OAUTH_TOKEN_URL", "") or "").strip() or endpoint.token_url,
        emails_url=(os.getenv("OAUTH_EMAILS_URL", "") or "").strip() or endpoint.emails_url,
    )

    scopes = tuple(_parse_csv(os.getenv("OAUTH_SCOPES", ""))) or DEFAULT_SCOPES
    success_url = (os.getenv("AUTH_SUCCESS_URL", "") or "").strip() or "/"
    failure_url = (os.getenv("AUTH_FAILURE_URL", "") or "").strip() or "/login"

    cookie_secure = _parse_bool(os.getenv("AUTH_COOKIE_SECURE", ""))
    if cookie_secure is None:
        # Default: secure cookies when the UI is served over https; otherwise allow local dev.
        cookie_secure = success_url.startswith("https://")

    raw_duration = (os.getenv("AUTH_COOKIE_DURATION_SECONDS", "") or "").strip()
    duration = int(float(raw_duration)) if raw_duration else DEFAULT_COOKIE_DURATION_SECONDS
    if duration <= 60:
        duration = 60

    return AuthConfig(
        provider=provider,
        oauth=OAuth2Config(
            client_id=(os.getenv("OAUTH_CLIENT_ID", "") or "").strip(),
            client_secret=(os.getenv("OAUTH_CLIENT_SECRET", "") or "").strip(),
            scopes=scopes,
            endpoint=endpoint,
            redirect_url=(os.getenv("OAUTH_REDIRECT_URL", "") or "").strip() or None,
        ),
        success_url=success_url,
        failure_url=failure_url,
        session_secret=(os.getenv("AUTH_SESSION_SECRET", "") or "").strip() or None,
        cookie=CookieConfig(
            name=(os.getenv("AUTH_COOKIE_NAME", "") or "").strip() or DEFAULT_COOKIE_NAME,
            duration_seconds=duration,
            secure=cookie_secure,
        ),
        allowed_domains=tuple(_parse_csv(os.getenv("AUTH_ALLOWED_DOMAINS", ""), lower=True)),
    )
