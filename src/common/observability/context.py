"""Per-request context shared between the gateway and the DAL."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
from uuid import uuid4

REQUEST_ID_HEADER = "X-Request-ID"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


@contextmanager
def bound_request_id(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id (generated when missing) for the duration of the block."""
    value = request_id or uuid4().hex
    token = request_id_var.set(value)
    try:
        yield value
    finally:
        request_id_var.reset(token)
