from __future__ import annotations

import httpx
import pytest

from influxsync.domain.reconciliation import (
    ApiCall,
    HttpMethod,
    Operation,
    ResourcePlan,
    execute_plan,
)
from tests.helpers.influxdb import FakeGateway, http_status_error


def test_calls_are_issued_in_order() -> None:
    gateway = FakeGateway()
    plan = ResourcePlan("puppet_data", Operation.UPDATE)
    plan.add(ApiCall(method=HttpMethod.PATCH, path="/buckets/1", body={"retentionRules": []}))
    plan.add(ApiCall(method=HttpMethod.POST, path="/buckets/1/members", body={"id": "2"}))
    plan.add(ApiCall(method=HttpMethod.DELETE, path="/buckets/1"))

    executed = execute_plan(gateway, plan)

    assert executed == plan.calls
    assert gateway.mutations == [
        ("PATCH", "/buckets/1"),
        ("POST", "/buckets/1/members"),
        ("DELETE", "/buckets/1"),
    ]


def test_follow_up_runs_before_remaining_calls() -> None:
    gateway = FakeGateway(responses={"POST /users": {"id": "4321"}})
    seen: list[object] = []

    def follow_up(response: object) -> list[ApiCall]:
        seen.append(response)
        return [ApiCall(method=HttpMethod.POST, path="/users/4321/password", body={})]

    plan = ResourcePlan("Alice", Operation.CREATE)
    plan.add(ApiCall(method=HttpMethod.POST, path="/users", body={}, follow_up=follow_up))
    plan.add(ApiCall(method=HttpMethod.POST, path="/other", body={}))

    execute_plan(gateway, plan)

    assert seen == [{"id": "4321"}]
    assert gateway.mutations == [
        ("POST", "/users"),
        ("POST", "/users/4321/password"),
        ("POST", "/other"),
    ]


def test_failure_stops_remaining_calls() -> None:
    gateway = FakeGateway(failures={"POST /buckets/1/members": http_status_error(404, "/x")})
    plan = ResourcePlan("puppet_data", Operation.UPDATE)
    plan.add(ApiCall(method=HttpMethod.POST, path="/buckets/1/members", body={"id": "2"}))
    plan.add(ApiCall(method=HttpMethod.POST, path="/buckets/1/labels", body={"labelID": "3"}))

    with pytest.raises(httpx.HTTPStatusError):
        execute_plan(gateway, plan)

    assert gateway.calls == []
