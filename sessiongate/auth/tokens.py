"""
Signed, self-contained tokens.

A token is `{"sub": principal, "exp": epoch seconds, "aud": purpose}` serialized and
signed with the process-wide secret. Verification needs nothing but the token, the
clock and the secret, so no server-side storage is involved.
"""

from __future__ import annotations

import hashlib
import math
import time
from typing import Callable, Optional

from itsdangerous import BadData, URLSafeSerializer

from sessiongate.auth.errors import IssuerFailure, TokenExpired, TokenInvalid
from sessiongate.auth.models import Principal

TOKEN_SALT = "sessiongate-token-v1"

AUDIENCE_SESSION = "session"
AUDIENCE_STATE = "state"


class Authenticator:
    """Issues and verifies signed tokens bound to a principal and an expiry instant."""

    def __init__(self, secret: Optional[str], *, now: Callable[[], float] = time.time) -> None:
        self._serializer: Optional[URLSafeSerializer] = None
        if secret:
            self._serializer = URLSafeSerializer(
                secret_key=secret,
                salt=TOKEN_SALT,
                signer_kwargs={"digest_method": hashlib.sha256},
            )
        self._now = now

    @property
    def enabled(self) -> bool:
        return self._serializer is not None

    def now(self) -> float:
        return self._now()

    def issue(self, principal: str, ttl: float, *, audience: str = AUDIENCE_SESSION) -> str:
        """
        Create a token for `principal` that expires `ttl` seconds from now.

        Raises:
            IssuerFailure: signing is not configured or the input cannot be signed.
        """
        if self._serializer is None:
            raise IssuerFailure("Token signing is not configured (AUTH_SESSION_SECRET)")
        if not principal:
            raise IssuerFailure("Refusing to sign an empty principal")
        if not math.isfinite(ttl) or ttl <= 0:
            raise IssuerFailure(f"Invalid token ttl: {ttl!r}")

        payload = {"sub": str(principal), "exp": self._now() + float(ttl), "aud": audience}
        try:
            return self._serializer.dumps(payload)
        except (TypeError, ValueError) as e:
            raise IssuerFailure(f"Unable to sign token: {e}") from e

    def verify(self, token: Optional[str], *, audience: str = AUDIENCE_SESSION) -> Principal:
        """
        Return the principal carried by `token`.

        Raises:
            TokenInvalid: empty, forged, malformed, or minted for another purpose.
            TokenExpired: valid signature but past its expiry instant.
        """
        if not token:
            raise TokenInvalid("Empty token")
        if self._serializer is None:
            raise TokenInvalid("Token signing is not configured")

        try:
            data = self._serializer.loads(token)
        except BadData as e:
            raise TokenInvalid(f"Bad token signature or encoding: {e}") from e

        if not isinstance(data, dict):
            raise TokenInvalid("Token payload is not an object")
        sub = data.get("sub")
        exp = data.get("exp")
        if not isinstance(sub, str) or not sub:
            raise TokenInvalid("Token payload missing subject")
        # bool is an int subclass; reject it explicitly.
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise TokenInvalid("Token payload missing expiry")
        if data.get("aud") != audience:
            raise TokenInvalid(f"Token audience mismatch (expected {audience})")

        if self._now() > exp:
            raise TokenExpired("Token expired")
        return Principal(sub)
