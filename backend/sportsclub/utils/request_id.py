"""Per-request correlation id shared by access logs and audit lines."""

import re
import uuid
from contextvars import ContextVar

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

_ACCEPTED = re.compile(r"^[A-Za-z0-9._:-]+$")

_current: ContextVar[str | None] = ContextVar("sportsclub_request_id", default=None)


def generate_request_id() -> str:
    return uuid.uuid4().hex


def accept_request_id(incoming: str | None) -> str:
    """Keep a caller-supplied id when it is short and log-safe, otherwise mint one."""
    if incoming:
        candidate = incoming.strip()
        if len(candidate) <= MAX_REQUEST_ID_LENGTH and _ACCEPTED.match(candidate):
            return candidate
    return generate_request_id()


def set_request_id(request_id: str | None) -> None:
    _current.set(request_id)


def get_request_id() -> str | None:
    return _current.get()
