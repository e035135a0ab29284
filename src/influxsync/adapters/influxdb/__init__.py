"""Public interface for the InfluxDB adapter."""

from __future__ import annotations

from .client import InfluxDBAPIError, InfluxDBClient
from .loader import (
    load_bucket_state,
    load_organization_state,
    load_setup_state,
    load_user_state,
)

__all__ = [
    "InfluxDBAPIError",
    "InfluxDBClient",
    "load_bucket_state",
    "load_organization_state",
    "load_setup_state",
    "load_user_state",
]
