from __future__ import annotations

from influxsync.adapters.influxdb import load_bucket_state, load_organization_state
from influxsync.domain.diagnostics import Diagnostics
from influxsync.domain.model import Bucket, Ensure, Organization, RemoteState, RetentionRule
from influxsync.domain.reconciliation import (
    BucketReconciler,
    Operation,
    OrganizationReconciler,
    ReconciliationPass,
)
from tests.helpers.influxdb import (
    FakeGateway,
    bucket_gateway,
    http_status_error,
    org_page,
    user_page,
)


def _org_pass(gateway: FakeGateway) -> ReconciliationPass[Organization]:
    return ReconciliationPass(
        reconciler=OrganizationReconciler(),
        loader=load_organization_state,
        gateway=gateway,
    )


def test_converged_state_issues_no_calls() -> None:
    gateway = bucket_gateway()
    declared = Bucket(
        name="puppet_data",
        org="puppetlabs",
        retention_rules=(
            RetentionRule(every_seconds=2_592_000, shard_group_duration_seconds=604_800),
        ),
        labels=(),
        members=(),
        create_dbrp=True,
    )
    reconciliation = ReconciliationPass(
        reconciler=BucketReconciler(), loader=load_bucket_state, gateway=gateway
    )

    result = reconciliation.run([declared])

    assert gateway.calls == []
    assert [outcome.operation for outcome in result.outcomes] == [Operation.NOOP]
    assert result.diagnostics.warnings == []


def test_remote_state_is_loaded_once_per_pass() -> None:
    gateway = FakeGateway(pages={"/orgs": [org_page()], "/users": [user_page()]})

    _org_pass(gateway).run(
        [Organization(name="puppetlabs"), Organization(name="other"), Organization(name="third")]
    )

    assert gateway.reads.count("/orgs") == 1
    assert gateway.mutations == [("POST", "/orgs"), ("POST", "/orgs")]


def test_failed_instance_does_not_stop_the_pass() -> None:
    gateway = FakeGateway(
        pages={"/orgs": [{"orgs": []}], "/users": [user_page()]},
        failures={"POST /orgs": http_status_error(500, "/orgs")},
    )
    result = _org_pass(gateway).run([Organization(name="first"), Organization(name="second")])

    assert [outcome.succeeded for outcome in result.outcomes] == [False, True]
    assert result.diagnostics.errors == ["Failed to create organization 'first': 500 error"]
    assert gateway.mutations == [("POST", "/orgs")]
    assert result.count(Operation.CREATE) == 1
    assert len(result.failed) == 1


def test_invalid_declaration_is_reported_per_instance() -> None:
    gateway = bucket_gateway()
    reconciliation = ReconciliationPass(
        reconciler=BucketReconciler(), loader=load_bucket_state, gateway=gateway
    )

    result = reconciliation.run(
        [Bucket(name="orphan"), Bucket(name="puppet_data", ensure=Ensure.ABSENT)]
    )

    assert result.outcomes[0].error is not None
    assert result.diagnostics.errors[0].startswith("Failed to reconcile bucket 'orphan'")
    assert gateway.mutations == [("DELETE", "/buckets/12345")]


def test_supplied_diagnostics_collect_pass_output() -> None:
    diagnostics = Diagnostics()
    gateway = FakeGateway()

    def loader(_: object) -> RemoteState[Organization]:
        return RemoteState(records=())

    ReconciliationPass(
        reconciler=OrganizationReconciler(), loader=loader, gateway=gateway
    ).run([Organization(name="puppetlabs", members=("admin",))], diagnostics=diagnostics)

    assert [entry.message for entry in diagnostics.entries] == [
        "Creating 'puppetlabs' with {'name': 'puppetlabs', 'description': None}"
    ]


def test_raw_declarations_are_validated_per_instance() -> None:
    gateway = FakeGateway(pages={"/orgs": [org_page()], "/users": [user_page()]})
    reconciliation = ReconciliationPass(
        reconciler=OrganizationReconciler(),
        loader=load_organization_state,
        gateway=gateway,
        record_type=Organization,
    )

    result = reconciliation.run(
        [{"name": "broken", "members": 42}, {"name": "other", "description": "Other"}]
    )

    assert [(outcome.name, outcome.succeeded) for outcome in result.outcomes] == [
        ("broken", False),
        ("other", True),
    ]
    assert gateway.mutations == [("POST", "/orgs")]


def test_raw_declaration_without_record_type_fails_its_instance() -> None:
    gateway = FakeGateway(pages={"/orgs": [org_page()], "/users": [user_page()]})

    result = _org_pass(gateway).run([{"name": "other"}])

    assert result.failed[0].name == "other"
    assert result.diagnostics.errors == [
        "Failed to reconcile organization 'other': "
        "Cannot validate a raw organization declaration without a record type"
    ]
