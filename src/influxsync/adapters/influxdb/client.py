"""InfluxDB v2 HTTP client implementing the ``RemoteGateway`` port."""

from __future__ import annotations

import json
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Self, cast

from pydantic import SecretStr

from influxsync.adapters.transport import API_PREFIX, build_http_client
from influxsync.domain.ports import RemoteGatewayError

if TYPE_CHECKING:
    from types import TracebackType

    import httpx

    from influxsync.adapters.transport import TransportConfig

log = getLogger(__name__)

MAX_PAGES = 1000


class InfluxDBAPIError(RemoteGatewayError):
    """Raised when the InfluxDB API returns an unexpected response."""


def _encode_secret(value: object) -> object:
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_body(body: Mapping[str, object]) -> bytes:
    return json.dumps(body, default=_encode_secret).encode("utf-8")


class InfluxDBClient:
    """Low-level JSON client for one InfluxDB instance.

    Paths are relative to ``/api/v2``. Non-2xx responses raise
    ``httpx.HTTPStatusError``; nothing is retried.
    """

    def __init__(self, config: TransportConfig, *, client: httpx.Client | None = None) -> None:
        self._config = config
        self._client = client or build_http_client(config)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get(self, path: str) -> object:
        log.debug("GET %s", path)
        return self._decode(self._client.get(path))

    def get_all(self, path: str) -> list[object]:
        """Return every page of ``path``, following ``links.next`` until it runs out."""

        pages: list[object] = []
        seen: set[str] = set()
        next_path: str | None = path
        while next_path is not None:
            if next_path in seen or len(pages) >= MAX_PAGES:
                raise InfluxDBAPIError(f"Pagination of {path} does not terminate")
            seen.add(next_path)
            page = self.get(next_path)
            pages.append(page)
            next_path = _next_page(page)
        return pages

    def post(self, path: str, body: Mapping[str, object]) -> object | None:
        log.debug("POST %s", path)
        return self._decode(self._client.post(path, content=encode_body(body), headers=_JSON))

    def patch(self, path: str, body: Mapping[str, object]) -> object | None:
        log.debug("PATCH %s", path)
        return self._decode(self._client.patch(path, content=encode_body(body), headers=_JSON))

    def delete(self, path: str) -> None:
        log.debug("DELETE %s", path)
        self._decode(self._client.delete(path))

    @staticmethod
    def _decode(response: httpx.Response) -> object | None:
        response.raise_for_status()
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise InfluxDBAPIError(
                f"Unexpected InfluxDB response payload from {response.request.url}"
            ) from exc


_JSON = {"Content-Type": "application/json"}


def _next_page(page: object) -> str | None:
    if not isinstance(page, Mapping):
        return None
    links = cast(Mapping[str, object], page).get("links")
    if not isinstance(links, Mapping):
        return None
    next_link = cast(Mapping[str, object], links).get("next")
    if not isinstance(next_link, str) or not next_link:
        return None
    if next_link.startswith(API_PREFIX):
        return next_link[len(API_PREFIX) :] or "/"
    return next_link
