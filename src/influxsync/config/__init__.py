"""Application configuration helpers."""

from __future__ import annotations

from .connection import ConnectionSettings, get_connection_settings
from .env import require_env_vars
from .errors import (
    ConfigurationError,
    MissingConfigurationError,
    TransportConfigurationError,
)
from .logging import configure_logging

__all__ = [
    "ConfigurationError",
    "ConnectionSettings",
    "MissingConfigurationError",
    "TransportConfigurationError",
    "configure_logging",
    "get_connection_settings",
    "require_env_vars",
]
