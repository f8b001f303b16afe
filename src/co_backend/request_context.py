"""Per-request correlation IDs shared by the API middleware and log records."""

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar

REQUEST_ID_HEADER = "X-Request-Id"

# Client-supplied IDs end up in every log line for the request, so only short
# tokens without whitespace or control characters are echoed back.
_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")

_request_id_var: ContextVar[str | None] = ContextVar("co_request_id", default=None)


def generate_request_id() -> str:
    """Generate a new UUIDv4 request ID."""
    return str(uuid.uuid4())


def resolve_request_id(incoming: str | None) -> str:
    """
    Return the caller's ``X-Request-Id`` when it is a usable token, else a
    fresh UUID.
    """
    candidate = (incoming or "").strip()
    if _CLIENT_ID_RE.match(candidate):
        return candidate
    return generate_request_id()


def get_request_id() -> str | None:
    return _request_id_var.get()


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


__all__ = [
    "REQUEST_ID_HEADER",
    "generate_request_id",
    "get_request_id",
    "resolve_request_id",
    "set_request_id",
]
