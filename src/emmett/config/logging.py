"""Structured logging for emmett.

Loggers are structlog ``BoundLogger`` objects wrapped around standard
library loggers, so nothing is printed until the host application enables
the ``emmett`` logger, either itself or through :func:`configure_logging`.
The output format (key/value or JSON) is looked up for every event, so
module-level loggers follow a later :func:`configure_logging` call.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from emmett.config.settings import Settings, get_settings
from emmett.core.exceptions import ConfigurationError

LOGGER_NAME = "emmett"

_handler: logging.Handler | None = None

# None until configure_logging() runs; the settings decide until then.
_json_output: bool | None = None

_json_renderer = structlog.processors.JSONRenderer()
_key_value_renderer = structlog.processors.KeyValueRenderer(
    key_order=["timestamp", "level", "logger", "event"]
)


def _render(logger: Any, method_name: str, event_dict: dict[str, Any]) -> str:
    json_output = get_settings().log_json if _json_output is None else _json_output
    renderer = _json_renderer if json_output else _key_value_renderer
    return renderer(logger, method_name, event_dict)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger writing through ``logging.getLogger(name)``."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _render,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    """Attach a stderr handler to the ``emmett`` logger at the configured level.

    Also switches every emmett logger to the configured output format. Safe
    to call more than once; the handler is only installed the first time,
    later calls just update the level and format.
    """
    global _handler, _json_output

    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(
            f"Unknown log level: {settings.log_level}",
            details={"log_level": settings.log_level},
        )

    _json_output = settings.log_json
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(_handler)
    return logger
