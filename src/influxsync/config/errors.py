"""Errors raised while turning settings into a usable InfluxDB connection."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a connection setting has an invalid value."""


class MissingConfigurationError(ConfigurationError):
    """Raised when a required ``INFLUXDB_*`` variable is absent or blank."""


class TransportConfigurationError(ConfigurationError):
    """Raised when settings cannot produce a usable transport (host, port, trust material)."""
