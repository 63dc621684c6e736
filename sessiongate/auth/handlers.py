"""
OAuth login, callback and logout routes.

Every response of the OAuth dance is a 307 redirect; the reason for a failure is
only ever written to the server log. The single exception is a login that cannot
mint its CSRF state: there is no safe place to redirect to, so it is a 500.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import PlainTextResponse, RedirectResponse

from sessiongate.auth.callback import CallbackResult, run_callback
from sessiongate.auth.config import AuthConfig
from sessiongate.auth.errors import IssuerFailure
from sessiongate.auth.logctx import for_request
from sessiongate.auth.provider import IdentityProvider
from sessiongate.auth.session import clear_session, set_session
from sessiongate.auth.state import new_state
from sessiongate.auth.tokens import Authenticator

logger = logging.getLogger(__name__)


def _redirect(url: str) -> RedirectResponse:
    resp = RedirectResponse(url=url, status_code=307)
    resp.headers["Cache-Control"] = "no-store"
    return resp


class OAuthHandlers:
    """
    Login/Callback/Logout for one provider.

    Holds only read-only collaborators, so a single instance serves all requests.
    """

    def __init__(
        self,
        cfg: AuthConfig,
        authenticator: Authenticator,
        provider: IdentityProvider,
        *,
        now: Optional[Callable[[], float]] = None,
    ) -> None:
        self.cfg = cfg
        self.authenticator = authenticator
        self.provider = provider
        self._now = now or authenticator.now

    def login(self, request: Request) -> Response:
        try:
            state = new_state(self.authenticator)
        except IssuerFailure as e:
            for_request(logger, request).error("Internal authentication error: %s", str(e))
            return PlainTextResponse("Internal authentication error", status_code=500)
        return _redirect(self.provider.authorize_url(state))

    def callback(self, request: Request, state: Optional[str], code: Optional[str]) -> Response:
        result = run_callback(self.cfg, self.authenticator, self.provider, state=state, code=code)
        return self.respond(request, result)

    def respond(self, request: Request, result: CallbackResult) -> Response:
        log = for_request(logger, request)
        resp = _redirect(result.redirect_url)
        if not result.ok:
            log.error(
                "%s (%s): %s",
                result.failure_message,
                type(result.error).__name__,
                str(result.error),
            )
            return resp

        set_session(resp, self.cfg, result.session_token or "", now=self._now())
        log.info("User %s is authenticated", result.principal)
        return resp

    def logout(self, request: Request) -> Response:
        resp = _redirect(self.cfg.success_url)
        clear_session(resp, self.cfg, now=self._now())
        for_request(logger, request).debug("Session cookie cleared")
        return resp


def build_router(handlers: OAuthHandlers) -> APIRouter:
    router = APIRouter(prefix=f"/oauth/{handlers.cfg.provider}", tags=["oauth"])

    # Plain `def` routes run in the worker threadpool, so blocking provider calls in
    # one request never hold up another.
    @router.get("/login")
    def oauth_login(request: Request) -> Response:
        return handlers.login(request)

    @router.get("/callback")
    def oauth_callback(
        request: Request,
        state: Optional[str] = Query(None),
        code: Optional[str] = Query(None),
    ) -> Response:
        return handlers.callback(request, state, code)

    @router.get("/logout")
    def oauth_logout(request: Request) -> Response:
        return handlers.logout(request)

    return router
