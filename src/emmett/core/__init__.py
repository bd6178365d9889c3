"""Core types, call normalization and exceptions for emmett."""

from emmett.core.constants import KILL_EVENT, VERSION
from emmett.core.exceptions import (
    ConfigurationError,
    EmmettError,
    IllegalStateError,
    InvalidArgumentError,
)
from emmett.core.models import BindOptions, Event, Handler, HandlerEntry
from emmett.core.scope import current_scope

__all__ = [
    # Models
    "BindOptions",
    "Event",
    "Handler",
    "HandlerEntry",
    "current_scope",
    # Constants
    "KILL_EVENT",
    "VERSION",
    # Exceptions
    "EmmettError",
    "ConfigurationError",
    "IllegalStateError",
    "InvalidArgumentError",
]
