"""Pydantic models describing the InfluxDB v2 API payloads."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InfluxBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Links(InfluxBaseModel):
    self_: str | None = Field(default=None, alias="self")
    next: str | None = None
    members: str | None = None
    labels: str | None = None


class ResourceRef(InfluxBaseModel):
    """An ``{id, name}`` pair as embedded in member and label listings."""

    id: str
    name: str | None = None


def _unwrap_listing(value: object, key: str) -> object:
    """Accept a plain list, a ``{key: [...]}`` wrapper, or a list of such wrappers."""

    if value is None:
        return []
    if isinstance(value, Mapping):
        return cast(Mapping[str, object], value).get(key) or []
    if isinstance(value, Sequence) and not isinstance(value, str):
        items: list[object] = []
        for entry in cast(Sequence[object], value):
            if isinstance(entry, Mapping) and "id" not in entry:
                nested = cast(Mapping[str, object], entry).get(key) or []
                items.extend(cast(Sequence[object], nested))
            else:
                items.append(entry)
        return items
    return value


class OrganizationPayload(InfluxBaseModel):
    id: str
    name: str
    description: str | None = None
    links: Links = Field(default_factory=Links)


class LabelPayload(InfluxBaseModel):
    id: str
    name: str
    org_id: str | None = Field(default=None, alias="orgID")


class UserPayload(InfluxBaseModel):
    id: str
    name: str
    status: str | None = None


class RetentionRulePayload(InfluxBaseModel):
    type: str = "expire"
    every_seconds: int = Field(alias="everySeconds")
    shard_group_duration_seconds: int | None = Field(
        default=None, alias="shardGroupDurationSeconds"
    )


class BucketPayload(InfluxBaseModel):
    id: str
    name: str
    org_id: str | None = Field(default=None, alias="orgID")
    type: str = "user"
    retention_rules: list[RetentionRulePayload] = Field(
        default_factory=list[RetentionRulePayload], alias="retentionRules"
    )
    labels: list[ResourceRef] = Field(default_factory=list[ResourceRef])
    members: list[ResourceRef] = Field(default_factory=list[ResourceRef])
    links: Links = Field(default_factory=Links)

    @field_validator("labels", mode="before")
    @classmethod
    def _unwrap_labels(cls, value: object) -> object:
        return _unwrap_listing(value, "labels")

    @field_validator("members", mode="before")
    @classmethod
    def _unwrap_members(cls, value: object) -> object:
        return _unwrap_listing(value, "users")

    @property
    def is_system(self) -> bool:
        return self.type == "system"


class DbrpPayload(InfluxBaseModel):
    id: str
    database: str
    retention_policy: str
    default: bool = False
    org_id: str | None = Field(default=None, alias="orgID")
    bucket_id: str = Field(alias="bucketID")


class PagedResponse(InfluxBaseModel):
    links: Links = Field(default_factory=Links)


class OrganizationsPage(PagedResponse):
    orgs: list[OrganizationPayload] = Field(default_factory=list[OrganizationPayload])


class BucketsPage(PagedResponse):
    buckets: list[BucketPayload] = Field(default_factory=list[BucketPayload])


class LabelsPage(PagedResponse):
    labels: list[LabelPayload] = Field(default_factory=list[LabelPayload])


class UsersPage(PagedResponse):
    users: list[UserPayload] = Field(default_factory=list[UserPayload])


class MembersPage(PagedResponse):
    users: list[ResourceRef] = Field(default_factory=list[ResourceRef])


class DbrpsPage(InfluxBaseModel):
    content: list[DbrpPayload] = Field(default_factory=list[DbrpPayload])


class SetupStatus(InfluxBaseModel):
    allowed: bool
