"""Typed records for the InfluxDB resources influxsync manages.

Records are addressed by business key (their ``name``), never by the opaque
identifier the server assigns. The same types describe both sides of a
reconciliation:

- declared records leave every attribute they do not manage as ``None``;
- loaded records always carry the remote ``id`` and fully populated
  association tuples (empty, never ``None``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import SecretStr  # noqa: TC002

if TYPE_CHECKING:
    from collections.abc import Mapping


class Ensure(StrEnum):
    PRESENT = "present"
    ABSENT = "absent"


class UserStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


_RULE_KEYS = {
    "type": "type",
    "every_seconds": "every_seconds",
    "everySeconds": "every_seconds",
    "shard_group_duration_seconds": "shard_group_duration_seconds",
    "shardGroupDurationSeconds": "shard_group_duration_seconds",
}


@dataclass(frozen=True, slots=True, kw_only=True)
class RetentionRule:
    """One bucket retention rule."""

    every_seconds: int
    shard_group_duration_seconds: int | None = None
    type: str = "expire"

    @classmethod
    def from_mapping(cls, value: Mapping[str, object]) -> RetentionRule:
        """Build a rule from either snake_case or the API's camelCase keys."""

        data: dict[str, object] = {}
        for key, item in value.items():
            field_name = _RULE_KEYS.get(str(key))
            if field_name is None:
                raise ValueError(f"Unknown retention rule key: {key}")
            data[field_name] = item
        if "every_seconds" not in data:
            raise ValueError("Retention rule requires everySeconds")
        shard = data.get("shard_group_duration_seconds")
        return cls(
            type=str(data.get("type", "expire")),
            every_seconds=_as_int(data["every_seconds"]),
            shard_group_duration_seconds=None if shard is None else _as_int(shard),
        )

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"type": self.type, "everySeconds": self.every_seconds}
        if self.shard_group_duration_seconds is not None:
            payload["shardGroupDurationSeconds"] = self.shard_group_duration_seconds
        return payload

    def satisfied_by(self, loaded: RetentionRule) -> bool:
        """Return whether ``loaded`` fulfils this declared rule.

        An unset shard group duration is filled in by the server, so it matches any value.
        """

        if self.type != loaded.type or self.every_seconds != loaded.every_seconds:
            return False
        return (
            self.shard_group_duration_seconds is None
            or self.shard_group_duration_seconds == loaded.shard_group_duration_seconds
        )


def _as_int(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int | str):
        raise ValueError(f"Expected an integer, got {value!r}")
    return int(value)


@dataclass(frozen=True, slots=True, kw_only=True)
class Organization:
    name: str
    ensure: Ensure = Ensure.PRESENT
    id: str | None = None
    description: str | None = None
    members: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Bucket:
    name: str
    ensure: Ensure = Ensure.PRESENT
    id: str | None = None
    org: str | None = None
    retention_rules: tuple[RetentionRule, ...] | None = None
    labels: tuple[str, ...] | None = None
    members: tuple[str, ...] | None = None
    create_dbrp: bool | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class User:
    name: str
    ensure: Ensure = Ensure.PRESENT
    id: str | None = None
    status: UserStatus | None = None
    password: SecretStr | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Label:
    name: str
    id: str
    org_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Setup:
    """First-run initialisation of an instance; ``present`` once it has happened."""

    name: str = "setup"
    ensure: Ensure = Ensure.PRESENT
    bucket: str | None = None
    org: str | None = None
    username: str | None = None
    password: SecretStr | None = None
    token: SecretStr | None = None
    retention_period_seconds: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DbrpMapping:
    """Legacy database/retention-policy mapping pointing at a bucket."""

    id: str
    database: str
    retention_policy: str
    bucket_id: str
    org_id: str | None = None
    default: bool = False


type Resource = Organization | Bucket | User | Setup


@dataclass(frozen=True, slots=True, kw_only=True)
class RemoteState[R: Resource]:
    """Everything one reconciliation pass knows about the remote side."""

    records: tuple[R, ...]
    organizations: tuple[Organization, ...] = ()
    users: tuple[User, ...] = ()
    labels: tuple[Label, ...] = ()
    dbrps: tuple[DbrpMapping, ...] = ()
