"""Application orchestration entry points."""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from influxsync.adapters.influxdb import (
    InfluxDBClient,
    load_bucket_state,
    load_organization_state,
    load_setup_state,
    load_user_state,
)
from influxsync.adapters.transport import build_transport
from influxsync.config import get_connection_settings
from influxsync.domain.diagnostics import Diagnostics
from influxsync.domain.model import Bucket, Organization, Setup, User
from influxsync.domain.reconciliation import (
    BucketReconciler,
    Operation,
    OrganizationReconciler,
    PassResult,
    ReconciliationPass,
    SetupReconciler,
    UserReconciler,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from influxsync.config import ConnectionSettings
    from influxsync.domain.model import Resource
    from influxsync.domain.ports import RemoteGateway
    from influxsync.domain.reconciliation import ResourceReconciler, StateLoader

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResourceKind:
    record_type: type[Resource]
    loader: StateLoader[Resource]
    reconciler_factory: Callable[[ConnectionSettings], ResourceReconciler[Resource]]


RESOURCE_KINDS: dict[str, ResourceKind] = {
    "bucket": ResourceKind(Bucket, load_bucket_state, lambda _: BucketReconciler()),
    "organization": ResourceKind(
        Organization, load_organization_state, lambda _: OrganizationReconciler()
    ),
    "user": ResourceKind(User, load_user_state, lambda _: UserReconciler()),
    "setup": ResourceKind(
        Setup, load_setup_state, lambda settings: SetupReconciler(token_file=settings.token_file)
    ),
}


def reconcile(
    kind: str,
    declared: Iterable[Mapping[str, object]],
    *,
    settings: ConnectionSettings | None = None,
    gateway: RemoteGateway | None = None,
    diagnostics: Diagnostics | None = None,
) -> PassResult:
    """Converge every declared instance of ``kind`` against one InfluxDB instance."""

    resource_kind = RESOURCE_KINDS.get(kind)
    if resource_kind is None:
        raise ValueError(f"Unsupported resource kind: {kind}")

    effective_settings = settings or get_connection_settings()
    effective_diagnostics = diagnostics or Diagnostics()
    items = list(declared)
    log.info("Starting %s reconciliation: declared=%d", kind, len(items))

    with ExitStack() as stack:
        if gateway is None:
            transport = build_transport(effective_settings, effective_diagnostics)
            gateway = stack.enter_context(InfluxDBClient(transport))
        reconciliation = ReconciliationPass(
            reconciler=resource_kind.reconciler_factory(effective_settings),
            loader=resource_kind.loader,
            gateway=gateway,
            admin_user=effective_settings.admin_user,
            record_type=resource_kind.record_type,
        )
        result = reconciliation.run(items, diagnostics=effective_diagnostics)

    log.info(
        f"Finished {kind} reconciliation: created={result.count(Operation.CREATE)}, "
        f"updated={result.count(Operation.UPDATE)}, deleted={result.count(Operation.DELETE)}, "
        f"failed={len(result.failed)}"
    )
    return result
