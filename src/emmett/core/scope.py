"""Execution scope observed by handlers while they run."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_current_scope: ContextVar[Any] = ContextVar("emmett_current_scope", default=None)


def current_scope() -> Any:
    """Return the scope of the handler currently running.

    Defaults to the dispatching emitter unless the handler was bound with
    an explicit ``scope`` option. Returns ``None`` outside of any handler.
    """
    return _current_scope.get()


@contextmanager
def handler_scope(scope: Any) -> Iterator[None]:
    """Install *scope* for the duration of one handler invocation."""
    token = _current_scope.set(scope)
    try:
        yield
    finally:
        _current_scope.reset(token)
