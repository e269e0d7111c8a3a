"""
Process-wide log setup.

Every record carries the id of the editor session that produced it, so the
interleaved output of several browser tabs served by one Streamlit process can
be told apart.
"""
import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

from boardide.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | [%(session_id)s] | %(name)s:%(funcName)s:%(lineno)d - %(message)s"

# Streamlit runs each rerun in its own thread; the id is re-bound per run
session_id_ctx: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


def new_session_id() -> str:
    return uuid.uuid4().hex[:12]


def get_session_id() -> str:
    """Session id bound to this context, created on first use."""
    sid = session_id_ctx.get()
    if sid is None:
        sid = new_session_id()
        session_id_ctx.set(sid)
    return sid


def bind_session_id(sid: str) -> Token:
    return session_id_ctx.set(sid)


@contextmanager
def session_scope(sid: str) -> Iterator[str]:
    """Bind sid for the duration of the block (CLI commands, tests)."""
    token = session_id_ctx.set(sid)
    try:
        yield sid
    finally:
        session_id_ctx.reset(token)


class SessionIDFilter(logging.Filter):
    def filter(self, record):
        record.session_id = get_session_id()
        return True


class _SessionHandler(logging.StreamHandler):
    """Marker type so reconfiguring only replaces our own handler."""


def configure_logging(level: Optional[str] = None) -> logging.Handler:
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    # Streamlit re-imports pages on every rerun; keep a single handler
    for handler in list(root.handlers):
        if isinstance(handler, _SessionHandler):
            root.removeHandler(handler)

    handler = _SessionHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SessionIDFilter())
    root.addHandler(handler)

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return handler


configure_logging()
logger = logging.getLogger("boardide")
