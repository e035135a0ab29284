"""Fetch remote collections and flatten them into ``RemoteState`` records.

Organization ids are translated back into names and nested label/member
listings into name tuples, so loaded records compare directly against
declared ones.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from influxsync.adapters.transport import API_PREFIX
from influxsync.domain.model import (
    Bucket,
    DbrpMapping,
    Ensure,
    Label,
    Organization,
    RemoteState,
    RetentionRule,
    Setup,
    User,
    UserStatus,
)

from .client import InfluxDBAPIError
from .schema import (
    BucketPayload,
    BucketsPage,
    DbrpsPage,
    LabelsPage,
    MembersPage,
    OrganizationsPage,
    ResourceRef,
    SetupStatus,
    UsersPage,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from influxsync.domain.ports import RemoteGateway

log = getLogger(__name__)


def _validate[M: BaseModel](model: type[M], payload: object, path: str) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InfluxDBAPIError(f"Unexpected InfluxDB response payload from {path}: {exc}") from exc


def _pages[M: BaseModel](gateway: RemoteGateway, path: str, model: type[M]) -> list[M]:
    return [_validate(model, page, path) for page in gateway.get_all(path)]


def _relative(link: str) -> str:
    return link[len(API_PREFIX) :] if link.startswith(API_PREFIX) else link


def fetch_organizations(gateway: RemoteGateway) -> list[Organization]:
    organizations: list[Organization] = []
    for page in _pages(gateway, "/orgs", OrganizationsPage):
        for org in page.orgs:
            members: tuple[str, ...] = ()
            if org.links.members:
                members = _member_names(gateway, org.links.members)
            organizations.append(
                Organization(
                    name=org.name,
                    id=org.id,
                    description=org.description,
                    members=members,
                )
            )
    return organizations


def fetch_users(gateway: RemoteGateway) -> list[User]:
    users: list[User] = []
    for page in _pages(gateway, "/users", UsersPage):
        for user in page.users:
            try:
                status = UserStatus(user.status) if user.status is not None else None
            except ValueError:
                log.debug("Ignoring unknown status %r of user %s", user.status, user.name)
                status = None
            users.append(User(name=user.name, id=user.id, status=status))
    return users


def fetch_labels(gateway: RemoteGateway) -> list[Label]:
    return [
        Label(name=label.name, id=label.id, org_id=label.org_id)
        for page in _pages(gateway, "/labels", LabelsPage)
        for label in page.labels
    ]


def fetch_dbrps(gateway: RemoteGateway, organizations: Iterable[Organization]) -> list[DbrpMapping]:
    mappings: list[DbrpMapping] = []
    for org in organizations:
        path = f"/dbrps?orgID={org.id}"
        for page in _pages(gateway, path, DbrpsPage):
            mappings.extend(
                DbrpMapping(
                    id=dbrp.id,
                    database=dbrp.database,
                    retention_policy=dbrp.retention_policy,
                    bucket_id=dbrp.bucket_id,
                    org_id=dbrp.org_id,
                    default=dbrp.default,
                )
                for dbrp in page.content
            )
    return mappings


def _member_names(gateway: RemoteGateway, link: str) -> tuple[str, ...]:
    path = _relative(link)
    refs = [ref for page in _pages(gateway, path, MembersPage) for ref in page.users]
    return tuple(ref.name or ref.id for ref in refs)


def _ref_names(refs: Iterable[ResourceRef], names_by_id: Mapping[str, str]) -> tuple[str, ...]:
    names: list[str] = []
    for ref in refs:
        name = ref.name or names_by_id.get(ref.id)
        if name is None:
            log.debug("Skipping reference to unknown id %s", ref.id)
            continue
        names.append(name)
    return tuple(names)


def load_bucket_state(gateway: RemoteGateway) -> RemoteState[Bucket]:
    organizations = fetch_organizations(gateway)
    users = fetch_users(gateway)
    labels = fetch_labels(gateway)
    dbrps = fetch_dbrps(gateway, organizations)

    org_names = {org.id: org.name for org in organizations if org.id is not None}
    label_names = {label.id: label.name for label in labels}
    user_names = {user.id: user.name for user in users if user.id is not None}
    mapped_buckets = {dbrp.bucket_id for dbrp in dbrps}

    records: list[Bucket] = []
    for page in _pages(gateway, "/buckets", BucketsPage):
        for payload in page.buckets:
            if payload.is_system:
                continue
            records.append(
                _bucket_record(gateway, payload, org_names, label_names, user_names, mapped_buckets)
            )

    log.debug("Loaded %d buckets across %d organizations", len(records), len(organizations))
    return RemoteState(
        records=tuple(records),
        organizations=tuple(organizations),
        users=tuple(users),
        labels=tuple(labels),
        dbrps=tuple(dbrps),
    )


def _bucket_record(
    gateway: RemoteGateway,
    payload: BucketPayload,
    org_names: Mapping[str, str],
    label_names: Mapping[str, str],
    user_names: Mapping[str, str],
    mapped_buckets: set[str],
) -> Bucket:
    if payload.links.members:
        members = _member_names(gateway, payload.links.members)
    else:
        members = _ref_names(payload.members, user_names)
    return Bucket(
        name=payload.name,
        id=payload.id,
        org=org_names.get(payload.org_id) if payload.org_id else None,
        retention_rules=tuple(
            RetentionRule(
                type=rule.type,
                every_seconds=rule.every_seconds,
                shard_group_duration_seconds=rule.shard_group_duration_seconds,
            )
            for rule in payload.retention_rules
        ),
        labels=_ref_names(payload.labels, label_names),
        members=members,
        create_dbrp=payload.id in mapped_buckets,
    )


def load_organization_state(gateway: RemoteGateway) -> RemoteState[Organization]:
    organizations = fetch_organizations(gateway)
    users = fetch_users(gateway)
    return RemoteState(
        records=tuple(organizations),
        organizations=tuple(organizations),
        users=tuple(users),
    )


def load_user_state(gateway: RemoteGateway) -> RemoteState[User]:
    users = fetch_users(gateway)
    return RemoteState(records=tuple(users), users=tuple(users))


def load_setup_state(gateway: RemoteGateway) -> RemoteState[Setup]:
    status = _validate(SetupStatus, gateway.get("/setup"), "/setup")
    ensure = Ensure.ABSENT if status.allowed else Ensure.PRESENT
    return RemoteState(records=(Setup(ensure=ensure),))
