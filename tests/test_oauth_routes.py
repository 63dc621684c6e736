from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from http.cookies import SimpleCookie
from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from conftest import T0, Clock, FakeProvider, make_config
from sessiongate.api.server import create_app
from sessiongate.auth.config import CookieConfig
from sessiongate.auth.tokens import AUDIENCE_STATE, Authenticator

REQUEST_TIME = datetime.fromtimestamp(T0, tz=timezone.utc)


def _client(cfg, provider: FakeProvider, clock: Clock) -> TestClient:
    return TestClient(create_app(cfg, provider=provider, now=clock))


def _login_state(c: TestClient) -> str:
    r = c.get("/oauth/github/login", follow_redirects=False)
    assert r.status_code == 307
    return parse_qs(urlparse(r.headers["location"]).query)["state"][0]


def _session_morsel(r, name: str = "session"):
    jar = SimpleCookie()
    jar.load(r.headers["set-cookie"])
    return jar[name]


def test_healthz_is_public(cfg, provider, clock) -> None:
    r = _client(cfg, provider, clock).get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_login_redirects_with_signed_state(cfg, provider, clock) -> None:
    c = _client(cfg, provider, clock)
    r = c.get("/oauth/github/login", follow_redirects=False)

    assert r.status_code == 307
    assert r.headers["location"].startswith("https://provider.test/authorize?")
    assert r.headers["cache-control"] == "no-store"
    assert "set-cookie" not in r.headers

    state = parse_qs(urlparse(r.headers["location"]).query)["state"][0]
    Authenticator(cfg.session_secret, now=clock).verify(state, audience=AUDIENCE_STATE)


def test_login_without_signing_secret_is_500(provider, clock, caplog) -> None:
    cfg = make_config(session_secret=None)
    with caplog.at_level(logging.ERROR, logger="sessiongate.auth.handlers"):
        r = _client(cfg, provider, clock).get("/oauth/github/login", follow_redirects=False)

    assert r.status_code == 500
    assert "location" not in r.headers
    assert r.headers["content-type"].startswith("text/plain")
    assert "AUTH_SESSION_SECRET" not in r.text
    assert "component=auth" in caplog.text
    assert "method=GET" in caplog.text


def test_callback_success_sets_session_cookie(cfg, provider, clock) -> None:
    c = _client(cfg, provider, clock)
    state = _login_state(c)

    r = c.get("/oauth/github/callback", params={"state": state, "code": "code-a"}, follow_redirects=False)

    assert r.status_code == 307
    assert r.headers["location"] == "/"
    morsel = _session_morsel(r)
    assert morsel["httponly"]
    assert morsel["path"] == "/"
    expires = parsedate_to_datetime(morsel["expires"])
    assert expires == REQUEST_TIME + timedelta(days=30)
    assert Authenticator(cfg.session_secret, now=clock).verify(morsel.value) == "a@x.com"


def test_session_cookie_is_accepted_downstream(cfg, provider, clock) -> None:
    c = _client(cfg, provider, clock)
    state = _login_state(c)
    r = c.get("/oauth/github/callback", params={"state": state, "code": "code-a"}, follow_redirects=False)
    token = _session_morsel(r).value

    me = c.get("/api/auth/me", headers={"Cookie": f"session={token}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "a@x.com"


def test_me_requires_valid_session(cfg, provider, clock) -> None:
    c = _client(cfg, provider, clock)
    assert c.get("/api/auth/me").status_code == 401

    r = c.get("/api/auth/me", headers={"Cookie": "session=forged.value"})
    assert r.status_code == 401
    # No WWW-Authenticate: it would trigger a browser basic-auth popup.
    assert "www-authenticate" not in {k.lower() for k in r.headers.keys()}


def test_expired_session_is_rejected_downstream(cfg, provider, clock) -> None:
    c = _client(cfg, provider, clock)
    token = Authenticator(cfg.session_secret, now=clock).issue("a@x.com", 60)
    clock.advance(61)
    assert c.get("/api/auth/me", headers={"Cookie": f"session={token}"}).status_code == 401


@pytest.mark.parametrize("params", [{"code": "code-a"}, {"state": "", "code": "code-a"}, {"state": "junk", "code": "x"}])
def test_callback_bad_state_redirects_to_failure_without_cookie(cfg, provider, clock, params) -> None:
    r = _client(cfg, provider, clock).get("/oauth/github/callback", params=params, follow_redirects=False)

    assert r.status_code == 307
    assert r.headers["location"] == "/login"
    assert "set-cookie" not in r.headers
    assert provider.exchanged == []


def test_callback_no_primary_verified_email(cfg, provider, clock, caplog) -> None:
    c = _client(cfg, provider, clock)
    state = _login_state(c)

    with caplog.at_level(logging.ERROR, logger="sessiongate.auth.handlers"):
        r = c.get("/oauth/github/callback", params={"state": state, "code": "code-none"}, follow_redirects=False)

    assert r.status_code == 307
    assert r.headers["location"] == "/login"
    assert "set-cookie" not in r.headers
    assert "NoPrimaryVerifiedEmail" in caplog.text
    record = next(rec for rec in caplog.records if rec.name == "sessiongate.auth.handlers")
    assert record.component == "auth"
    assert record.method == "GET"
    assert "/oauth/github/callback" in record.url
    # The cause is logged, never sent to the browser.
    assert r.text == ""


def test_callback_with_state_older_than_ten_minutes(cfg, provider, clock) -> None:
    c = _client(cfg, provider, clock)
    state = _login_state(c)
    clock.advance(10 * 60 + 1)

    r = c.get("/oauth/github/callback", params={"state": state, "code": "code-a"}, follow_redirects=False)
    assert r.headers["location"] == "/login"
    assert "set-cookie" not in r.headers


def test_logout_expires_cookie_in_the_past(cfg, provider, clock) -> None:
    r = _client(cfg, provider, clock).get("/oauth/github/logout", follow_redirects=False)

    assert r.status_code == 307
    assert r.headers["location"] == "/"
    morsel = _session_morsel(r)
    assert morsel["httponly"]
    assert morsel["path"] == "/"
    expires = parsedate_to_datetime(morsel["expires"])
    assert expires < REQUEST_TIME
    assert expires == REQUEST_TIME - timedelta(hours=1)


def test_custom_cookie_name_and_urls(provider, clock) -> None:
    cfg = make_config(
        success_url="https://ui.example.com/",
        failure_url="https://ui.example.com/login?error=oauth",
        cookie=CookieConfig(name="ui_session", duration_seconds=3600, secure=True),
    )
    c = _client(cfg, provider, clock)
    state = _login_state(c)
    r = c.get("/oauth/github/callback", params={"state": state, "code": "code-b"}, follow_redirects=False)

    assert r.headers["location"] == "https://ui.example.com/"
    morsel = _session_morsel(r, "ui_session")
    assert morsel["secure"]
    assert parsedate_to_datetime(morsel["expires"]) == REQUEST_TIME + timedelta(hours=1)

    r = c.get("/oauth/github/callback", params={"code": "code-b"}, follow_redirects=False)
    assert r.headers["location"] == "https://ui.example.com/login?error=oauth"


def test_unknown_provider_path_is_404(cfg, provider, clock) -> None:
    r = _client(cfg, provider, clock).get("/oauth/google/login", follow_redirects=False)
    assert r.status_code == 404
