"""InfluxDB connection configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import SecretStr

from .env import env_flag, env_float, env_int, env_str, require_env_vars

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8086
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_TOKEN_FILE = "~/.influxdb_token"
DEFAULT_ADMIN_USER = "admin"


@dataclass(frozen=True, slots=True)
class ConnectionSettings:
    """Holds everything needed to reach one InfluxDB instance."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    use_ssl: bool = True
    use_system_store: bool = False
    ca_bundle: Path | None = None
    token: SecretStr | None = None
    token_file: Path | None = None
    username: str | None = None
    password: SecretStr | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    admin_user: str = DEFAULT_ADMIN_USER


def get_connection_settings() -> ConnectionSettings:
    ca_bundle = env_str("INFLUXDB_CA_BUNDLE")
    token = env_str("INFLUXDB_TOKEN")
    token_file = env_str("INFLUXDB_TOKEN_FILE") or DEFAULT_TOKEN_FILE

    username: str | None = None
    password: SecretStr | None = None
    if env_str("INFLUXDB_USERNAME") or env_str("INFLUXDB_PASSWORD"):
        # basic auth needs both halves
        values = require_env_vars(("INFLUXDB_USERNAME", "INFLUXDB_PASSWORD"))
        username = values["INFLUXDB_USERNAME"]
        password = SecretStr(values["INFLUXDB_PASSWORD"])

    return ConnectionSettings(
        host=env_str("INFLUXDB_HOST") or DEFAULT_HOST,
        port=env_int("INFLUXDB_PORT", default=DEFAULT_PORT),
        use_ssl=env_flag("INFLUXDB_USE_SSL", default=True),
        use_system_store=env_flag("INFLUXDB_USE_SYSTEM_STORE", default=False),
        ca_bundle=Path(ca_bundle) if ca_bundle else None,
        token=SecretStr(token) if token else None,
        token_file=Path(token_file).expanduser(),
        username=username,
        password=password,
        timeout_seconds=env_float("INFLUXDB_TIMEOUT_SECONDS", default=DEFAULT_TIMEOUT_SECONDS),
        admin_user=env_str("INFLUXDB_ADMIN_USER") or DEFAULT_ADMIN_USER,
    )
