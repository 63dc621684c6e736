"""
HTTP server for the OAuth login flow.

Routes:
- /oauth/<provider>/login|callback|logout  the OAuth dance (always redirects)
- /api/auth/me                            who am I (session cookie required)
- /healthz                                liveness
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, FastAPI, Request

from sessiongate.auth.config import AuthConfig, load_auth_config
from sessiongate.auth.deps import require_principal
from sessiongate.auth.handlers import OAuthHandlers, build_router
from sessiongate.auth.models import Principal
from sessiongate.auth.provider import IdentityProvider, OAuth2Provider, describe
from sessiongate.auth.tokens import Authenticator

logger = logging.getLogger(__name__)


def create_app(
    cfg: Optional[AuthConfig] = None,
    *,
    provider: Optional[IdentityProvider] = None,
    now: Optional[Callable[[], float]] = None,
) -> FastAPI:
    """
    Build the application around one frozen config.

    `provider` and `now` are injectable so tests can stub the identity provider
    and the clock.
    """
    cfg = cfg or load_auth_config()
    authenticator = Authenticator(cfg.session_secret, now=now or time.time)
    provider = provider or OAuth2Provider(cfg.oauth)
    handlers = OAuthHandlers(cfg, authenticator, provider)

    app = FastAPI(title="sessiongate")
    app.state.auth_config = cfg
    app.state.authenticator = authenticator
    app.include_router(build_router(handlers))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming HTTP requests."""
        start_time = time.time()
        logger.debug("%s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
            raise
        process_time = time.time() - start_time
        logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
        return response

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"ok": True}

    @app.get("/api/auth/me")
    def auth_me(principal: Principal = Depends(require_principal)) -> Dict[str, Any]:
        return {"ok": True, "user": {"email": principal}}

    if not cfg.oauth_enabled:
        logger.warning(
            "OAuth is not fully configured (need OAUTH_CLIENT_ID, OAUTH_CLIENT_SECRET, AUTH_SESSION_SECRET); "
            "logins will fail"
        )
    else:
        logger.info("OAuth provider %s: %s", cfg.provider, describe(cfg.oauth))
    return app


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    import uvicorn

    # Configure logging for the application
    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    app = create_app()
    logger.info("Starting OAuth server on %s:%d (log_level=%s)", host, port, log_level)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level)
