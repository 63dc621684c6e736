"""
Pytest config.

Pins the repo root on sys.path so `import sessiongate` works without an install, and
provides a frozen config, a controllable clock and a stub identity provider so no
test ever talks to a real OAuth provider.
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Dict, List

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

from sessiongate.auth.config import GITHUB_ENDPOINT, AuthConfig, CookieConfig, OAuth2Config, load_auth_config  # noqa: E402
from sessiongate.auth.errors import ExchangeFailed  # noqa: E402
from sessiongate.auth.models import ProviderEmail  # noqa: E402

TEST_SECRET = "test-secret-key-for-testing-purposes-only"
T0 = 1_767_225_600.0  # 2026-01-01T00:00:00Z


class Clock:
    def __init__(self, start: float = T0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


class FakeProvider:
    """Maps authorization codes to access tokens, and access tokens to email lists."""

    def __init__(self, emails_by_code: Dict[str, List[ProviderEmail]]) -> None:
        self.emails_by_code = emails_by_code
        self.exchanged: List[str] = []
        self._lock = threading.Lock()

    def authorize_url(self, state: str) -> str:
        return f"https://provider.test/authorize?state={state}"

    def exchange_code(self, code: str) -> str:
        if code not in self.emails_by_code:
            raise ExchangeFailed("bad_verification_code")
        with self._lock:
            self.exchanged.append(code)
        return f"token-for-{code}"

    def list_emails(self, access_token: str) -> List[ProviderEmail]:
        return self.emails_by_code[access_token[len("token-for-") :]]


def make_config(**overrides) -> AuthConfig:
    values = dict(
        provider="github",
        oauth=OAuth2Config(
            client_id="test-client-id",
            client_secret="test-client-secret",
            scopes=("user:email",),
            endpoint=GITHUB_ENDPOINT,
        ),
        success_url="/",
        failure_url="/login",
        session_secret=TEST_SECRET,
        cookie=CookieConfig(),
    )
    values.update(overrides)
    return AuthConfig(**values)


@pytest.fixture(autouse=True)
def _clear_auth_config_cache():
    load_auth_config.cache_clear()
    yield
    load_auth_config.cache_clear()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cfg() -> AuthConfig:
    return make_config()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        {
            "code-a": [
                ProviderEmail(email="a@x.com", verified=True, primary=True),
                ProviderEmail(email="b@x.com", verified=True, primary=False),
            ],
            "code-b": [ProviderEmail(email="b@y.com", verified=True, primary=True)],
            "code-none": [
                ProviderEmail(email="c@x.com", verified=False, primary=True),
                ProviderEmail(email="d@x.com", verified=True, primary=False),
            ],
        }
    )
