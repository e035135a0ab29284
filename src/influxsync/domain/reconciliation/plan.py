"""Planned remote operations and their execution.

Reconcilers only *plan*: they return ``ResourcePlan`` objects listing the
HTTP calls that converge one instance. ``execute_plan`` is the single place
where those calls reach the gateway, one at a time and in order.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from influxsync.domain.ports import RemoteGateway


class HttpMethod(StrEnum):
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"


class Operation(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "noop"


type FollowUp = Callable[[object], Sequence[ApiCall]]


@dataclass(frozen=True, slots=True, kw_only=True)
class ApiCall:
    """One mutating request.

    ``follow_up`` receives the decoded response and may return further calls
    that depend on it (for example the id of a freshly created user).
    """

    method: HttpMethod
    path: str
    body: Mapping[str, object] | None = None
    follow_up: FollowUp | None = field(default=None, compare=False, repr=False)


@dataclass(slots=True)
class ResourcePlan:
    name: str
    operation: Operation
    calls: list[ApiCall] = field(default_factory=list["ApiCall"])

    def add(self, call: ApiCall) -> None:
        self.calls.append(call)


def execute_plan(gateway: RemoteGateway, plan: ResourcePlan) -> list[ApiCall]:
    """Issue every call of ``plan`` sequentially and return the calls made.

    Gateway errors propagate; calls after a failure are not attempted.
    """

    executed: list[ApiCall] = []
    pending = list(plan.calls)
    while pending:
        call = pending.pop(0)
        response = _dispatch(gateway, call)
        executed.append(call)
        if call.follow_up is not None:
            pending[0:0] = call.follow_up(response)
    return executed


def _dispatch(gateway: RemoteGateway, call: ApiCall) -> object | None:
    if call.method is HttpMethod.DELETE:
        gateway.delete(call.path)
        return None
    body = call.body if call.body is not None else {}
    if call.method is HttpMethod.POST:
        return gateway.post(call.path, body)
    return gateway.patch(call.path, body)
