"""Port for the HTTP gateway the reconciliation core talks through."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


class RemoteGatewayError(RuntimeError):
    """Raised by gateways when the remote API answers with something unusable."""


@runtime_checkable
class RemoteGateway(Protocol):
    """Stateless JSON verbs relative to the API root (``/orgs``, ``/buckets/<id>``...)."""

    def get(self, path: str) -> object: ...

    def get_all(self, path: str) -> list[object]:
        """Return every page of a paginated collection, first page first."""
        ...

    def post(self, path: str, body: Mapping[str, object]) -> object | None: ...

    def patch(self, path: str, body: Mapping[str, object]) -> object | None: ...

    def delete(self, path: str) -> None: ...


__all__ = ["RemoteGateway", "RemoteGatewayError"]
