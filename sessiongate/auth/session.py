from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Response

from sessiongate.auth.config import AuthConfig

CLEARED_COOKIE_VALUE = "none"


def session_cookie_name(cfg: AuthConfig) -> str:
    return cfg.cookie.name


def _utc(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def session_cookie_kwargs(cfg: AuthConfig, value: str, *, now: float) -> dict:
    return {
        "key": session_cookie_name(cfg),
        "value": value,
        "max_age": cfg.cookie.duration_seconds,
        "expires": _utc(now) + timedelta(seconds=cfg.cookie.duration_seconds),
        "httponly": True,
        "secure": cfg.cookie.secure,
        "samesite": "lax",
        "path": "/",
    }


def clear_session_cookie_kwargs(cfg: AuthConfig, *, now: float) -> dict:
    # Expires an hour in the past so browsers drop the cookie immediately.
    return {
        "key": session_cookie_name(cfg),
        "value": CLEARED_COOKIE_VALUE,
        "max_age": 0,
        "expires": _utc(now) - timedelta(hours=1),
        "httponly": True,
        "secure": cfg.cookie.secure,
        "samesite": "lax",
        "path": "/",
    }


def set_session(response: Response, cfg: AuthConfig, token: str, *, now: float) -> None:
    response.set_cookie(**session_cookie_kwargs(cfg, token, now=now))


def clear_session(response: Response, cfg: AuthConfig, *, now: float) -> None:
    response.set_cookie(**clear_session_cookie_kwargs(cfg, now=now))


def read_session(cfg: AuthConfig, cookies: dict) -> Optional[str]:
    value = cookies.get(session_cookie_name(cfg))
    if not value or value == CLEARED_COOKIE_VALUE:
        return None
    return value
