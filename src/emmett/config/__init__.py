"""Configuration module for emmett."""

from emmett.config.logging import configure_logging, get_logger
from emmett.config.settings import Settings, get_settings

__all__ = ["Settings", "configure_logging", "get_logger", "get_settings"]
