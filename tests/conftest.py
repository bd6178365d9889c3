"""Shared fixtures for emmett tests."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import pytest

from emmett import Emitter, Event, current_scope
from emmett.config import logging as emmett_logging
from emmett.config.logging import LOGGER_NAME


@pytest.fixture
def emitter() -> Emitter:
    return Emitter()


@pytest.fixture
def calls() -> list[tuple[str, Any, Any]]:
    """Ordered log of ``(handler name, event key, event data)``."""
    return []


@pytest.fixture
def make_handler(calls) -> Callable[[str], Callable[[Event], None]]:
    """Build named handlers appending to the shared ``calls`` log."""

    def _make(name: str) -> Callable[[Event], None]:
        def handler(event: Event) -> None:
            calls.append((name, event.key, event.data))

        handler.__name__ = name
        return handler

    return _make


@pytest.fixture
def scopes() -> list[Any]:
    return []


@pytest.fixture
def scope_recorder(scopes) -> Callable[[Event], None]:
    def handler(event: Event) -> None:
        scopes.append(current_scope())

    return handler


@pytest.fixture
def reset_emmett_logger(monkeypatch):
    """Restore the emmett logger level and output format after the test."""
    monkeypatch.setattr(emmett_logging, "_json_output", None)
    logger = logging.getLogger(LOGGER_NAME)
    level = logger.level
    yield logger
    logger.setLevel(level)
