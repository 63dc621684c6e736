from __future__ import annotations

import logging
from typing import Any, Dict, MutableMapping, Tuple

from fastapi import Request

from sessiongate.auth.util import strip_crlf


def request_fields(request: Request, component: str = "auth") -> Dict[str, str]:
    client = request.client
    return {
        "component": component,
        "remote_addr": f"{client.host}:{client.port}" if client else "-",
        "method": request.method,
        "url": strip_crlf(str(request.url)),
    }


class RequestLogger(logging.LoggerAdapter):
    """
    Prefix every message with request metadata.

    The fields are also attached as record attributes so JSON/structured handlers
    can pick them up without parsing the message.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = dict(self.extra or {})
        prefix = " ".join(f"{k}={v}" for k, v in fields.items())
        extra = dict(kwargs.get("extra") or {})
        extra.update(fields)
        kwargs["extra"] = extra
        return f"{prefix} {msg}", kwargs


def for_request(logger: logging.Logger, request: Request, component: str = "auth") -> RequestLogger:
    return RequestLogger(logger, request_fields(request, component))
