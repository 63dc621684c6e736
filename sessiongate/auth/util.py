from __future__ import annotations

import base64
import os


def random_string(nbytes: int = 32) -> str:
    """`nbytes` from the OS CSPRNG, standard base64-encoded."""
    if nbytes < 32:
        raise ValueError("random_string requires at least 32 bytes of entropy")
    return base64.b64encode(os.urandom(nbytes)).decode("ascii")


def email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].strip().lower() if "@" in email else ""


def strip_crlf(value: str) -> str:
    # Redirect targets and log fields must stay on one header/log line.
    return (value or "").replace("\r", "").replace("\n", "")
