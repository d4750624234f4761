"""
SideHive Functions - Request context.

Context variables carry the caller's session/user/trace through a request
so deep helpers (LLM usage tracking) can attribute work without threading
ids through every call.
"""

from contextvars import ContextVar
from typing import Optional

_session_id: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
_user_id: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
_trace_id: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def set_request_context(
    session_id: str | None = None,
    user_id: str | None = None,
    trace_id: str | None = None,
):
    """Set the context for the current request."""
    if session_id:
        _session_id.set(session_id)
    if user_id:
        _user_id.set(user_id)
    if trace_id:
        _trace_id.set(trace_id)


def get_session_id() -> str | None:
    return _session_id.get()


def get_current_user_id() -> str | None:
    return _user_id.get()


def get_trace_id() -> str | None:
    return _trace_id.get()


def clear_request_context():
    """Clear the request context (call at end of request)."""
    _session_id.set(None)
    _user_id.set(None)
    _trace_id.set(None)
