"""Request correlation ids.

The id lives in a ContextVar so log records emitted anywhere while a request
is handled (services, background tasks started from it) carry the same value.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Client-supplied ids are echoed back in a header and written to logs
_ACCEPTED_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def generate_request_id() -> str:
    return str(uuid.uuid4())


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a well-formed incoming X-Request-ID, otherwise mint a new one."""
    if incoming and _ACCEPTED_REQUEST_ID.match(incoming):
        return incoming
    return generate_request_id()


def get_request_id() -> str:
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
