from __future__ import annotations

import ssl
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, TypedDict

import httpx
from pydantic import SecretStr

from influxsync.config.errors import TransportConfigurationError

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from influxsync.config.connection import ConnectionSettings
    from influxsync.domain.diagnostics import Diagnostics

log = getLogger(__name__)

API_PREFIX = "/api/v2"


@dataclass(slots=True, frozen=True)
class TransportConfig:
    base_url: str
    verify: ssl.SSLContext | bool = True
    token: SecretStr | None = None
    basic_auth: tuple[str, SecretStr] | None = None
    timeout_seconds: float = 30.0

    @property
    def uses_tls(self) -> bool:
        return self.base_url.startswith("https://")

    @property
    def ssl_context(self) -> ssl.SSLContext | None:
        return self.verify if isinstance(self.verify, ssl.SSLContext) else None


class TokenAuth(httpx.Auth):
    """``Authorization: Token <token>`` as InfluxDB expects it."""

    def __init__(self, token: SecretStr) -> None:
        self._token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Token {self._token.get_secret_value()}"
        yield request


class ClientOptions(TypedDict, total=False):
    base_url: str
    timeout: float
    verify: ssl.SSLContext | bool
    auth: httpx.Auth
    headers: dict[str, str]


def build_transport(settings: ConnectionSettings, diagnostics: Diagnostics) -> TransportConfig:
    """Turn connection settings into an immutable transport description.

    A missing CA bundle is only reported through ``diagnostics``. An unreadable
    one is reported too when the system store backs it up, and raises
    ``TransportConfigurationError`` when it is the only trust source.
    """

    host = settings.host.strip()
    if not host:
        raise TransportConfigurationError("InfluxDB host must not be blank")
    if not 0 < settings.port < 65536:
        raise TransportConfigurationError(f"Invalid InfluxDB port: {settings.port}")

    scheme = "https" if settings.use_ssl else "http"
    verify: ssl.SSLContext | bool = True
    if settings.use_ssl:
        if settings.use_system_store:
            verify = _system_store_context(settings.ca_bundle, diagnostics)
        elif settings.ca_bundle is not None:
            verify = _bundle_only_context(settings.ca_bundle, diagnostics)

    basic_auth: tuple[str, SecretStr] | None = None
    if settings.username is not None and settings.password is not None:
        basic_auth = (settings.username, settings.password)

    return TransportConfig(
        base_url=f"{scheme}://{host}:{settings.port}{API_PREFIX}",
        verify=verify,
        token=_resolve_token(settings, diagnostics),
        basic_auth=basic_auth,
        timeout_seconds=settings.timeout_seconds,
    )


def build_http_client(config: TransportConfig) -> httpx.Client:
    options: ClientOptions = {
        "base_url": config.base_url,
        "timeout": config.timeout_seconds,
        "verify": config.verify,
        "headers": {"Accept": "application/json"},
    }
    if config.token is not None:
        options["auth"] = TokenAuth(config.token)
    elif config.basic_auth is not None:
        username, password = config.basic_auth
        options["auth"] = httpx.BasicAuth(username, password.get_secret_value())
    return httpx.Client(**options)


def _system_store_context(ca_bundle: Path | None, diagnostics: Diagnostics) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if ca_bundle is None:
        return context
    if not ca_bundle.is_file():
        diagnostics.warning(f"No CA bundle found at {ca_bundle}")
        return context
    try:
        context.load_verify_locations(cafile=str(ca_bundle))
    except (ssl.SSLError, OSError) as exc:
        diagnostics.warning(f"Unable to load CA bundle at {ca_bundle}: {exc}")
    return context


def _bundle_only_context(ca_bundle: Path, diagnostics: Diagnostics) -> ssl.SSLContext | bool:
    if not ca_bundle.is_file():
        diagnostics.warning(f"No CA bundle found at {ca_bundle}")
        return True
    try:
        return ssl.create_default_context(cafile=str(ca_bundle))
    except (ssl.SSLError, OSError) as exc:
        msg = f"Unable to load CA bundle at {ca_bundle}: {exc}"
        raise TransportConfigurationError(msg) from exc


def _resolve_token(settings: ConnectionSettings, diagnostics: Diagnostics) -> SecretStr | None:
    if settings.token is not None:
        return settings.token
    token_file = settings.token_file
    if token_file is None or not token_file.is_file():
        return None
    try:
        lines = token_file.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        diagnostics.warning(f"Unable to read token file {token_file}: {exc}")
        return None
    token = lines[0].strip() if lines else ""
    if not token:
        log.debug("Token file %s is empty", token_file)
        return None
    return SecretStr(token)
