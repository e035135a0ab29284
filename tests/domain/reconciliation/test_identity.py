from __future__ import annotations

from influxsync.domain.diagnostics import Diagnostics
from influxsync.domain.model import Label, Organization, RemoteState, User
from influxsync.domain.reconciliation import ADMIN_MEMBER_WARNING, IdentityResolver


def _resolver(**kwargs: object) -> IdentityResolver:
    state: RemoteState[User] = RemoteState(
        records=(),
        users=(User(name="Alice", id="4321"), User(name="Bob", id="321")),
        labels=(Label(name="label_1", id="1234"),),
        organizations=(Organization(name="puppetlabs", id="123"),),
    )
    return IdentityResolver.from_state(state, **kwargs)  # type: ignore[arg-type]


def test_resolves_names_to_ids() -> None:
    resolver = _resolver()
    diagnostics = Diagnostics()

    assert resolver.resolve_user("Alice", diagnostics) == "4321"
    assert resolver.resolve_label("label_1", diagnostics) == "1234"
    assert resolver.resolve_org("puppetlabs") == "123"
    assert diagnostics.entries == []


def test_lookups_are_case_sensitive() -> None:
    diagnostics = Diagnostics()

    assert _resolver().resolve_user("alice", diagnostics) is None
    assert diagnostics.warnings == ["Could not find user alice"]


def test_misses_warn_once_per_name() -> None:
    resolver = _resolver()
    diagnostics = Diagnostics()

    resolver.resolve_user("Carol", diagnostics)
    resolver.resolve_label("label_2", diagnostics)
    assert resolver.resolve_org("elsewhere") is None

    assert diagnostics.warnings == ["Could not find user Carol", "Could not find label label_2"]


def test_first_record_wins_for_duplicate_names() -> None:
    state: RemoteState[User] = RemoteState(
        records=(),
        users=(User(name="Alice", id="first"), User(name="Alice", id="second")),
    )

    resolver = IdentityResolver.from_state(state)

    assert resolver.resolve_user("Alice", Diagnostics()) == "first"


def test_admin_is_never_resolved_as_org_member() -> None:
    state: RemoteState[User] = RemoteState(records=(), users=(User(name="admin", id="1"),))
    resolver = IdentityResolver.from_state(state)
    diagnostics = Diagnostics()

    assert resolver.resolve_org_member("admin", diagnostics) is None
    assert diagnostics.warnings == [ADMIN_MEMBER_WARNING]


def test_configured_admin_user_is_excluded() -> None:
    resolver = _resolver(admin_user="Bob")
    diagnostics = Diagnostics()

    assert resolver.resolve_org_member("Bob", diagnostics) is None
    assert resolver.resolve_org_member("Alice", diagnostics) == "4321"
    assert diagnostics.warnings == [ADMIN_MEMBER_WARNING]
