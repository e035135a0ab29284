"""Reconciliation pass: load, resolve, plan and apply for one resource type.

A pass owns its ``RemoteState`` and ``IdentityResolver`` for its whole
duration and drops them afterwards. Instances are handled strictly one after
another; a transport failure ends the affected instance only.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from influxsync.domain.declared import InvalidDeclarationError, parse_declared
from influxsync.domain.diagnostics import Diagnostics
from influxsync.domain.model import Ensure
from influxsync.domain.ports import RemoteGatewayError

from .identity import DEFAULT_ADMIN_USER, IdentityResolver
from .plan import ApiCall, Operation, ResourcePlan, execute_plan

if TYPE_CHECKING:
    from collections.abc import Iterable

    from influxsync.domain.model import RemoteState, Resource
    from influxsync.domain.ports import RemoteGateway

    from .resources import ResourceReconciler

log = getLogger(__name__)

type StateLoader[R: Resource] = Callable[[RemoteGateway], RemoteState[R]]


@dataclass(slots=True)
class InstanceOutcome:
    """What happened to one declared instance."""

    name: str
    operation: Operation
    calls: tuple[ApiCall, ...] = ()
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class PassResult:
    kind: str
    outcomes: list[InstanceOutcome] = field(default_factory=list["InstanceOutcome"])
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def calls(self) -> list[ApiCall]:
        return [call for outcome in self.outcomes for call in outcome.calls]

    @property
    def failed(self) -> list[InstanceOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    def count(self, operation: Operation) -> int:
        return sum(
            1
            for outcome in self.outcomes
            if outcome.operation is operation and outcome.succeeded and outcome.calls
        )


def plan_instance[R: Resource](
    reconciler: ResourceReconciler[R],
    declared: R,
    state: RemoteState[R],
    resolver: IdentityResolver,
    diagnostics: Diagnostics,
) -> ResourcePlan:
    """Pick the transition for ``declared`` and plan its calls without touching the network."""

    current = reconciler.find_current(declared, state)
    if declared.ensure is Ensure.PRESENT:
        if current is None:
            return reconciler.plan_create(declared, resolver, diagnostics)
        if reconciler.has_drift(declared, current):
            return reconciler.plan_update(declared, current, resolver, diagnostics)
        return ResourcePlan(declared.name, Operation.NOOP)
    if current is None:
        return ResourcePlan(declared.name, Operation.NOOP)
    return reconciler.plan_delete(current, diagnostics)


@dataclass(slots=True)
class ReconciliationPass[R: Resource]:
    """Run one load → diff → apply cycle for every declared instance of a kind."""

    reconciler: ResourceReconciler[R]
    loader: StateLoader[R]
    gateway: RemoteGateway
    admin_user: str = DEFAULT_ADMIN_USER
    record_type: type[R] | None = None

    def run(
        self,
        declared: Iterable[R | Mapping[str, object]],
        *,
        diagnostics: Diagnostics | None = None,
    ) -> PassResult:
        result = PassResult(kind=self.reconciler.kind, diagnostics=diagnostics or Diagnostics())
        state = self.loader(self.gateway)
        resolver = IdentityResolver.from_state(state, admin_user=self.admin_user)
        log.debug("Loaded %d %s records", len(state.records), self.reconciler.kind)
        for record in declared:
            outcome = self.reconcile_instance(record, state, resolver, result.diagnostics)
            result.outcomes.append(outcome)
        return result

    def reconcile_instance(
        self,
        declared: R | Mapping[str, object],
        state: RemoteState[R],
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> InstanceOutcome:
        """Plan and apply one instance; raw mappings are validated here first.

        Validation, transport and API failures end this instance only and are
        recorded on its outcome.
        """

        name = _declared_name(declared)
        operation = Operation.NOOP
        try:
            record = self._as_record(declared)
            plan = plan_instance(self.reconciler, record, state, resolver, diagnostics)
            operation = plan.operation
            calls = execute_plan(self.gateway, plan)
        except (httpx.HTTPError, RemoteGatewayError, InvalidDeclarationError) as exc:
            verb = "reconcile" if operation is Operation.NOOP else str(operation)
            diagnostics.error(f"Failed to {verb} {self.reconciler.kind} '{name}': {exc}")
            return InstanceOutcome(name, operation, error=str(exc))
        return InstanceOutcome(name, operation, tuple(calls))

    def _as_record(self, declared: R | Mapping[str, object]) -> R:
        if not isinstance(declared, Mapping):
            return declared
        if self.record_type is None:
            raise InvalidDeclarationError(
                f"Cannot validate a raw {self.reconciler.kind} declaration without a record type"
            )
        return parse_declared(self.record_type, declared)


def _declared_name(declared: Resource | Mapping[str, object]) -> str:
    if isinstance(declared, Mapping):
        return str(declared.get("name", "<unnamed>"))
    return declared.name
