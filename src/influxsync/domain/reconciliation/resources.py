"""Per resource type planning: create, update and delete.

Each reconciler answers four questions for one declared instance:

- which loaded record is the same resource (``find_current``)
- whether it has drifted from the declaration (``has_drift``)
- which calls create, update or delete it (``plan_*``)

Associations (members, labels, DBRP mappings) are additive only: declared
names missing remotely are added, remote extras are never removed. They are
also never sent with a create; the update path of the next pass adds them.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from influxsync.domain.declared import InvalidDeclarationError
from influxsync.domain.model import Bucket, Ensure, Organization, Setup, User

from .plan import ApiCall, HttpMethod, Operation, ResourcePlan

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from influxsync.domain.diagnostics import Diagnostics
    from influxsync.domain.model import RemoteState, Resource, RetentionRule

    from .identity import IdentityResolver
    from .plan import FollowUp

log = getLogger(__name__)

DBRP_RETENTION_POLICY = "Forever"
SETUP_UPDATE_WARNING = "Unable to update setup resource"
SETUP_DELETE_WARNING = "Unable to delete setup resource"
_SETUP_ATTRIBUTES = ("bucket", "org", "username", "password", "token", "retention_period_seconds")


def missing_names(declared: Sequence[str] | None, loaded: Sequence[str] | None) -> list[str]:
    """Every declared occurrence absent from ``loaded``, in declaration order.

    Repeats are kept so each occurrence is resolved, and warned about, on its own.
    """

    if not declared:
        return []
    present = set(loaded or ())
    return [name for name in declared if name not in present]


def resolve_once(
    names: Sequence[str],
    resolve: Callable[[str], str | None],
) -> list[tuple[str, str]]:
    """Resolve each name, keeping the first ``(name, id)`` pair per id."""

    seen: set[str] = set()
    resolved: list[tuple[str, str]] = []
    for name in names:
        identifier = resolve(name)
        if identifier is None or identifier in seen:
            continue
        seen.add(identifier)
        resolved.append((name, identifier))
    return resolved


def rules_satisfied(
    declared: Sequence[RetentionRule] | None,
    loaded: Sequence[RetentionRule] | None,
) -> bool:
    if declared is None:
        return True
    loaded_rules = tuple(loaded or ())
    if len(declared) != len(loaded_rules):
        return False
    return all(
        rule.satisfied_by(current) for rule, current in zip(declared, loaded_rules, strict=True)
    )


class ResourceReconciler[R: Resource](ABC):
    """Planning strategy for one resource type."""

    kind: str

    def find_current(self, declared: R, state: RemoteState[R]) -> R | None:
        for record in state.records:
            if record.ensure is Ensure.PRESENT and record.name == declared.name:
                return record
        return None

    @abstractmethod
    def has_drift(self, declared: R, current: R) -> bool: ...

    @abstractmethod
    def plan_create(
        self,
        declared: R,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan: ...

    @abstractmethod
    def plan_update(
        self,
        declared: R,
        current: R,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan: ...

    @abstractmethod
    def plan_delete(self, current: R, diagnostics: Diagnostics) -> ResourcePlan: ...


def _delete(
    collection: str,
    current: Bucket | Organization | User,
    diagnostics: Diagnostics,
) -> ResourcePlan:
    diagnostics.debug(f"Deleting '{current.name}'")
    plan = ResourcePlan(current.name, Operation.DELETE)
    plan.add(ApiCall(method=HttpMethod.DELETE, path=f"/{collection}/{current.id}"))
    return plan


class BucketReconciler(ResourceReconciler[Bucket]):
    kind = "bucket"

    def find_current(self, declared: Bucket, state: RemoteState[Bucket]) -> Bucket | None:
        for record in state.records:
            if record.name != declared.name:
                continue
            if declared.org is None or record.org == declared.org:
                return record
        return None

    def has_drift(self, declared: Bucket, current: Bucket) -> bool:
        return (
            not rules_satisfied(declared.retention_rules, current.retention_rules)
            or bool(missing_names(declared.labels, current.labels))
            or bool(missing_names(declared.members, current.members))
            or bool(declared.create_dbrp and not current.create_dbrp)
        )

    def plan_create(
        self,
        declared: Bucket,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        if declared.org is None:
            raise InvalidDeclarationError(f"Bucket '{declared.name}' requires an org")
        plan = ResourcePlan(declared.name, Operation.CREATE)
        org_id = resolver.resolve_org(declared.org)
        if org_id is None:
            diagnostics.warning(f"Could not find organization {declared.org}")
            return plan

        payload: dict[str, object] = {
            "name": declared.name,
            "orgId": org_id,
            "retentionRules": _rules_payload(declared.retention_rules),
        }
        diagnostics.debug(f"Creating '{declared.name}' with {payload!r}")
        plan.add(ApiCall(method=HttpMethod.POST, path="/buckets", body=payload))
        return plan

    def plan_update(
        self,
        declared: Bucket,
        current: Bucket,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        plan = ResourcePlan(declared.name, Operation.UPDATE)
        base = f"/buckets/{current.id}"

        diagnostics.debug(f"Updating '{declared.name}' with {_bucket_payload(declared)!r}")
        if not rules_satisfied(declared.retention_rules, current.retention_rules):
            patch: dict[str, object] = {
                "name": declared.name,
                "retentionRules": _rules_payload(declared.retention_rules),
            }
            plan.add(ApiCall(method=HttpMethod.PATCH, path=base, body=patch))

        members = missing_names(declared.members, current.members)
        for _, user_id in resolve_once(
            members, partial(resolver.resolve_user, diagnostics=diagnostics)
        ):
            plan.add(ApiCall(method=HttpMethod.POST, path=f"{base}/members", body={"id": user_id}))

        labels = missing_names(declared.labels, current.labels)
        for _, label_id in resolve_once(
            labels, partial(resolver.resolve_label, diagnostics=diagnostics)
        ):
            plan.add(
                ApiCall(
                    method=HttpMethod.POST,
                    path=f"{base}/labels",
                    body={"labelID": label_id},
                )
            )

        if declared.create_dbrp and not current.create_dbrp:
            org_id = resolver.resolve_org(current.org) if current.org else None
            if org_id is None:
                diagnostics.warning(f"Could not find organization {current.org}")
            else:
                plan.add(
                    ApiCall(
                        method=HttpMethod.POST,
                        path="/dbrps",
                        body={
                            "bucketID": current.id,
                            "database": current.name,
                            "default": True,
                            "orgID": org_id,
                            "retention_policy": DBRP_RETENTION_POLICY,
                        },
                    )
                )
        return plan

    def plan_delete(self, current: Bucket, diagnostics: Diagnostics) -> ResourcePlan:
        return _delete("buckets", current, diagnostics)


def _rules_payload(rules: Sequence[RetentionRule] | None) -> list[dict[str, object]] | None:
    if rules is None:
        return None
    return [rule.to_payload() for rule in rules]


def _bucket_payload(declared: Bucket) -> dict[str, object]:
    """Declared bucket attributes as logged for an update."""

    payload: dict[str, object] = {"name": declared.name, "org": declared.org}
    if declared.retention_rules is not None:
        payload["retentionRules"] = _rules_payload(declared.retention_rules)
    if declared.members is not None:
        payload["members"] = list(declared.members)
    if declared.labels is not None:
        payload["labels"] = list(declared.labels)
    if declared.create_dbrp:
        payload["create_dbrp"] = True
    return payload


class OrganizationReconciler(ResourceReconciler[Organization]):
    kind = "organization"

    def has_drift(self, declared: Organization, current: Organization) -> bool:
        return (
            declared.description is not None and declared.description != current.description
        ) or bool(missing_names(declared.members, current.members))

    def plan_create(
        self,
        declared: Organization,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        del resolver
        payload: dict[str, object] = {"name": declared.name, "description": declared.description}
        diagnostics.debug(f"Creating '{declared.name}' with {payload!r}")
        plan = ResourcePlan(declared.name, Operation.CREATE)
        plan.add(ApiCall(method=HttpMethod.POST, path="/orgs", body=payload))
        return plan

    def plan_update(
        self,
        declared: Organization,
        current: Organization,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        plan = ResourcePlan(declared.name, Operation.UPDATE)
        base = f"/orgs/{current.id}"

        desired: dict[str, object] = {"name": declared.name}
        if declared.description is not None:
            desired["description"] = declared.description
        if declared.members is not None:
            desired["members"] = list(declared.members)
        diagnostics.debug(f"Updating '{declared.name}' with {desired!r}")
        if declared.description is not None and declared.description != current.description:
            plan.add(
                ApiCall(
                    method=HttpMethod.PATCH,
                    path=base,
                    body={"description": declared.description},
                )
            )

        members = missing_names(declared.members, current.members)
        for member, user_id in resolve_once(
            members, partial(resolver.resolve_org_member, diagnostics=diagnostics)
        ):
            plan.add(
                ApiCall(
                    method=HttpMethod.POST,
                    path=f"{base}/members",
                    body={"name": member, "id": user_id},
                )
            )
        return plan

    def plan_delete(self, current: Organization, diagnostics: Diagnostics) -> ResourcePlan:
        return _delete("orgs", current, diagnostics)


class UserReconciler(ResourceReconciler[User]):
    kind = "user"

    def has_drift(self, declared: User, current: User) -> bool:
        return declared.status is not None and declared.status != current.status

    def plan_create(
        self,
        declared: User,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        del resolver
        payload: dict[str, object] = {"name": declared.name}
        diagnostics.debug(f"Creating '{declared.name}' with {payload!r}")
        plan = ResourcePlan(declared.name, Operation.CREATE)
        password = declared.password
        if password is None:
            plan.add(ApiCall(method=HttpMethod.POST, path="/users", body=payload))
            return plan

        def set_password(response: object) -> list[ApiCall]:
            user_id = response.get("id") if isinstance(response, dict) else None
            if user_id is None:
                diagnostics.warning(f"Unable to set password for '{declared.name}': no id returned")
                return []
            return [
                ApiCall(
                    method=HttpMethod.POST,
                    path=f"/users/{user_id}/password",
                    body={"password": password},
                )
            ]

        plan.add(
            ApiCall(
                method=HttpMethod.POST,
                path="/users",
                body=payload,
                follow_up=set_password,
            )
        )
        return plan

    def plan_update(
        self,
        declared: User,
        current: User,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        del resolver
        plan = ResourcePlan(declared.name, Operation.UPDATE)
        patch: dict[str, object] = {"name": declared.name}
        if declared.status is not None and declared.status != current.status:
            patch["status"] = str(declared.status)
        diagnostics.debug(f"Updating '{declared.name}' with {patch!r}")
        if "status" in patch:
            plan.add(ApiCall(method=HttpMethod.PATCH, path=f"/users/{current.id}", body=patch))
        return plan

    def plan_delete(self, current: User, diagnostics: Diagnostics) -> ResourcePlan:
        return _delete("users", current, diagnostics)


@dataclass(slots=True)
class SetupReconciler(ResourceReconciler[Setup]):
    """Create-once reconciler; the instance cannot be updated or un-setup."""

    token_file: Path | None = None
    kind = "setup"

    def find_current(self, declared: Setup, state: RemoteState[Setup]) -> Setup | None:
        del declared
        for record in state.records:
            if record.ensure is Ensure.PRESENT:
                return record
        return None

    def has_drift(self, declared: Setup, current: Setup) -> bool:
        # the setup probe reports nothing but ``ensure``
        return any(
            getattr(declared, attribute) is not None
            and getattr(declared, attribute) != getattr(current, attribute)
            for attribute in _SETUP_ATTRIBUTES
        )

    def plan_create(
        self,
        declared: Setup,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        del resolver
        missing = [
            attribute
            for attribute in ("bucket", "org", "username")
            if getattr(declared, attribute) is None
        ]
        if missing:
            raise InvalidDeclarationError(f"Setup requires {', '.join(missing)}")

        payload: dict[str, object] = {
            "bucket": declared.bucket,
            "org": declared.org,
            "username": declared.username,
        }
        if declared.password is not None:
            payload["password"] = declared.password
        if declared.token is not None:
            payload["token"] = declared.token
        if declared.retention_period_seconds is not None:
            payload["retentionPeriodSeconds"] = declared.retention_period_seconds
        diagnostics.debug(f"Creating '{declared.name}' with {payload!r}")

        plan = ResourcePlan(declared.name, Operation.CREATE)
        plan.add(
            ApiCall(
                method=HttpMethod.POST,
                path="/setup",
                body=payload,
                follow_up=self._store_token_follow_up(diagnostics),
            )
        )
        return plan

    def plan_update(
        self,
        declared: Setup,
        current: Setup,
        resolver: IdentityResolver,
        diagnostics: Diagnostics,
    ) -> ResourcePlan:
        del current, resolver
        diagnostics.warning(SETUP_UPDATE_WARNING)
        return ResourcePlan(declared.name, Operation.NOOP)

    def plan_delete(self, current: Setup, diagnostics: Diagnostics) -> ResourcePlan:
        diagnostics.warning(SETUP_DELETE_WARNING)
        return ResourcePlan(current.name, Operation.NOOP)

    def _store_token_follow_up(self, diagnostics: Diagnostics) -> FollowUp:
        token_file = self.token_file

        def store_token(response: object) -> list[ApiCall]:
            if token_file is None:
                return []
            auth = response.get("auth") if isinstance(response, dict) else None
            token = auth.get("token") if isinstance(auth, dict) else None
            if not isinstance(token, str) or not token:
                diagnostics.warning("Setup response did not include an operator token")
                return []
            try:
                write_token_file(token_file, token)
            except OSError as exc:
                diagnostics.error(f"Unable to write operator token to {token_file}: {exc}")
                return []
            diagnostics.info(f"Stored operator token in {token_file}")
            return []

        return store_token


def write_token_file(path: Path, token: str) -> None:
    """Write ``token`` to ``path`` readable by the owner only."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(token)
    log.debug("Wrote token file %s", path)
