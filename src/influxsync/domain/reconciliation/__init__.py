"""Reconciliation core: converge remote InfluxDB state toward declared state.

Layered flow for one pass:
1) a state loader fetches and flattens remote collections into ``RemoteState``
2) ``IdentityResolver`` builds name -> id tables from that state
3) a ``ResourceReconciler`` picks create/update/delete per declared instance
   and plans the HTTP calls
4) ``execute_plan`` issues the calls through the gateway, one at a time
"""

from __future__ import annotations

from .engine import InstanceOutcome, PassResult, ReconciliationPass, StateLoader, plan_instance
from .identity import ADMIN_MEMBER_WARNING, IdentityResolver
from .plan import ApiCall, HttpMethod, Operation, ResourcePlan, execute_plan
from .resources import (
    BucketReconciler,
    OrganizationReconciler,
    ResourceReconciler,
    SetupReconciler,
    UserReconciler,
)

__all__ = [
    "ADMIN_MEMBER_WARNING",
    "ApiCall",
    "BucketReconciler",
    "HttpMethod",
    "IdentityResolver",
    "InstanceOutcome",
    "Operation",
    "OrganizationReconciler",
    "PassResult",
    "ReconciliationPass",
    "ResourcePlan",
    "ResourceReconciler",
    "SetupReconciler",
    "StateLoader",
    "UserReconciler",
    "execute_plan",
    "plan_instance",
]
