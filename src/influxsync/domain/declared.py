"""Validation of declared resource input."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import fields
from functools import cache
from typing import TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError

from .model import RetentionRule

if TYPE_CHECKING:
    from .model import Resource


class InvalidDeclarationError(ValueError):
    """Raised when a declared resource cannot be turned into a typed record."""


@cache
def _adapter[R: Resource](record_type: type[R]) -> TypeAdapter[R]:
    return TypeAdapter(record_type)


@cache
def _field_names(record_type: type) -> frozenset[str]:
    return frozenset(item.name for item in fields(record_type))


def parse_declared[R: Resource](record_type: type[R], declared: Mapping[str, object]) -> R:
    """Validate one declared attribute mapping into ``record_type``.

    Keys the record type does not know (connection attributes, metaparameters)
    are dropped. Secrets given as plain strings are wrapped into ``SecretStr``.
    """

    name = declared.get("name", "<unnamed>")
    data = {key: value for key, value in declared.items() if key in _field_names(record_type)}
    rules = data.get("retention_rules")
    if isinstance(rules, Sequence) and not isinstance(rules, str):
        try:
            data["retention_rules"] = tuple(_retention_rule(rule) for rule in rules)
        except ValueError as exc:
            raise InvalidDeclarationError(
                f"Invalid {record_type.__name__.lower()} '{name}': {exc}"
            ) from exc

    try:
        return _adapter(record_type).validate_python(data)
    except ValidationError as exc:
        raise InvalidDeclarationError(
            f"Invalid {record_type.__name__.lower()} '{name}': {exc}"
        ) from exc


def _retention_rule(rule: object) -> RetentionRule:
    if isinstance(rule, RetentionRule):
        return rule
    if isinstance(rule, Mapping):
        return RetentionRule.from_mapping(rule)
    raise ValueError(f"Expected a retention rule mapping, got {rule!r}")
