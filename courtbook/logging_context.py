"""Per-request log tagging.

Each CLI invocation (or any other caller of ``set_request_id``) gets a short
``REQ-xxxxxx`` tag held in a ContextVar. ``RequestIdFilter`` copies the tag
onto every record as ``request_id``, so the log format can print it and all
lines written while handling one booking share the same tag.

    set_request_id()                      # REQ-3f9a1c
    log = get_request_logger(__name__)
    log.info("Booking created")           # ... [REQ-3f9a1c]: Booking created
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Optional

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


def set_request_id(request_id: Optional[str] = None) -> str:
    """Tag the current context; a fresh ``REQ-`` id is generated when none is given."""
    value = request_id or f"REQ-{uuid.uuid4().hex[:6]}"
    _request_id.set(value)
    return value


def get_request_id() -> str:
    """The tag of the current context, or ``-`` outside any request."""
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Copies the current request tag onto each record it sees."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Module logger whose records always carry ``request_id``.

    Attaches at most one RequestIdFilter, however often it is called.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
