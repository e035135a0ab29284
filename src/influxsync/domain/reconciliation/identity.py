"""Name to identifier lookups for cross references.

Declared resources refer to users, labels and organizations by name while the
API only accepts opaque ids. The resolver holds ``name -> id`` tables built
from one pass's ``RemoteState`` and is thrown away with it.

Lookup policy:
- exact, case-sensitive match on ``name``
- the first record wins when the server reports duplicate names
- a miss is reported as a warning and yields ``None``; the caller skips the
  association and a later pass picks it up once the target exists
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from influxsync.domain.diagnostics import Diagnostics
    from influxsync.domain.model import RemoteState, Resource

DEFAULT_ADMIN_USER = "admin"
ADMIN_MEMBER_WARNING = "Unable to add the admin user. Please remove it from your members[] entry."


class _Named(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def id(self) -> str | None: ...


def _first_match_table(records: Iterable[_Named]) -> dict[str, str]:
    table: dict[str, str] = {}
    for record in records:
        if record.id is None or record.name in table:
            continue
        table[record.name] = record.id
    return table


@dataclass(frozen=True, slots=True, kw_only=True)
class IdentityResolver:
    users: Mapping[str, str] = field(default_factory=dict[str, str])
    labels: Mapping[str, str] = field(default_factory=dict[str, str])
    organizations: Mapping[str, str] = field(default_factory=dict[str, str])
    admin_user: str = DEFAULT_ADMIN_USER

    @classmethod
    def from_state(
        cls,
        state: RemoteState[Resource],
        *,
        admin_user: str = DEFAULT_ADMIN_USER,
    ) -> IdentityResolver:
        return cls(
            users=_first_match_table(state.users),
            labels=_first_match_table(state.labels),
            organizations=_first_match_table(state.organizations),
            admin_user=admin_user,
        )

    def resolve_user(self, name: str, diagnostics: Diagnostics) -> str | None:
        user_id = self.users.get(name)
        if user_id is None:
            diagnostics.warning(f"Could not find user {name}")
        return user_id

    def resolve_label(self, name: str, diagnostics: Diagnostics) -> str | None:
        label_id = self.labels.get(name)
        if label_id is None:
            diagnostics.warning(f"Could not find label {name}")
        return label_id

    def resolve_org(self, name: str) -> str | None:
        return self.organizations.get(name)

    def resolve_org_member(self, name: str, diagnostics: Diagnostics) -> str | None:
        """Resolve a user for organization membership, refusing the admin user outright."""

        if name == self.admin_user:
            diagnostics.warning(ADMIN_MEMBER_WARNING)
            return None
        return self.resolve_user(name, diagnostics)
