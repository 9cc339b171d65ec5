"""Scoped logging context.

Fields pushed here are attached to every log record emitted in the same
thread (or task) until the scope ends. The listener uses it to tag all
records produced while a reservation is processed with its id.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

_log_context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently in scope."""
    return dict(_log_context.get())


def push_log_context(**fields: Any) -> Token:
    """Merge ``fields`` into the current context; pass the token to pop_log_context()."""
    return _log_context.set({**_log_context.get(), **fields})


def pop_log_context(token: Token) -> None:
    _log_context.reset(token)


def clear_log_context() -> None:
    """Drop every field. Intended for tests."""
    _log_context.set({})


class log_context:
    """Context manager form of push/pop.

    Example:
        >>> with log_context(reservation_id="r1"):
        ...     logger.info("Dispatching")  # record carries reservation_id
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
