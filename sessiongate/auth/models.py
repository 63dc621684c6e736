from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, NewType

# Authenticated identity carried inside a session token (a verified email address).
Principal = NewType("Principal", str)


@dataclass(frozen=True)
class ProviderEmail:
    """One email entry as reported by the identity provider."""

    email: str
    verified: bool = False
    primary: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ProviderEmail":
        return cls(
            email=str(data.get("email") or "").strip(),
            verified=data.get("verified") is True,
            primary=data.get("primary") is True,
        )

    @property
    def usable(self) -> bool:
        return bool(self.email) and self.verified and self.primary
