from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, Request

from sessiongate.auth.config import AuthConfig
from sessiongate.auth.errors import AuthenticationFailed
from sessiongate.auth.models import Principal
from sessiongate.auth.session import read_session
from sessiongate.auth.tokens import Authenticator

logger = logging.getLogger(__name__)


def authenticate_request(
    request: Request,
    cfg: Optional[AuthConfig] = None,
    authenticator: Optional[Authenticator] = None,
) -> Optional[Principal]:
    """
    Return the principal of a request's session cookie, or None.

    Defaults to the config/authenticator the app was built with. Forged and expired
    cookies are indistinguishable to the caller.
    """
    cfg = cfg or request.app.state.auth_config
    authenticator = authenticator or request.app.state.authenticator

    token = read_session(cfg, request.cookies)
    if token is None:
        return None
    try:
        return authenticator.verify(token)
    except AuthenticationFailed as e:
        logger.debug("Rejected session cookie (%s): %s", type(e).__name__, str(e))
        return None


def require_principal(request: Request) -> Principal:
    """FastAPI dependency for routes that need a signed-in user."""
    principal = authenticate_request(request)
    if principal is None:
        # No WWW-Authenticate: browsers would pop a basic-auth dialog.
        raise HTTPException(status_code=401, detail="Unauthorized")
    return principal
