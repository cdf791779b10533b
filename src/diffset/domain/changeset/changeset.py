"""Changeset value type and the field-level operations on it.

A ``Changeset`` describes one pending mutation of one record: the current
``data``, the proposed ``changes``, accumulated ``errors`` and the resolved
``action``. Changesets are frozen; every operation returns a new one.

Relation fields hold nested changesets in ``changes``: a ``Changeset`` (or
``None``) for cardinality one, a tuple of changesets for cardinality many.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal

from diffset.domain.errors import ChangesetError, ChangesetMismatchError
from diffset.domain.model import Cardinality, NotLoaded, Record

from .actions import REMOVAL_ACTIONS, Action

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from diffset.domain.model import RelationDescriptor, Schema


@dataclass(frozen=True, slots=True)
class FieldError:
    """One validation failure attached to ``field``.

    ``message`` may contain ``%{key}`` placeholders filled from ``metadata``.
    """

    field: str
    message: str
    metadata: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


@dataclass(frozen=True, slots=True, kw_only=True)
class Changeset:
    """Pending mutation of one record.

    ``replace_action`` is only set for ``Action.REPLACE`` outcomes and names the
    persisted effect of the replacement (``DELETE`` or ``UPDATE``).
    ``displaced`` carries the removal outcome of the item a cardinality-one
    relation replaced. ``force_update`` asks the persistence layer to update the
    record even when ``changes`` holds nothing but relation changes.
    """

    data: Record
    params: Mapping[str, object] | None = None
    changes: Mapping[str, object] = field(default_factory=dict)
    errors: tuple[FieldError, ...] = ()
    action: Action | None = None
    required: frozenset[str] = frozenset()
    validations: tuple[tuple[str, Mapping[str, object]], ...] = ()
    replace_action: Action | None = None
    displaced: Changeset | None = None
    force_update: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "changes", MappingProxyType(dict(self.changes)))
        if self.params is not None:
            object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def schema(self) -> Schema:
        return self.data.schema

    @property
    def valid(self) -> bool:
        """False when this changeset or any nested changeset carries errors."""

        if self.errors:
            return False
        return all(child.valid for _, child in self.nested())

    def nested(self) -> Iterator[tuple[str, Changeset]]:
        """Yield ``(field, changeset)`` for every nested changeset in ``changes``."""

        for name, relation in self.schema.relations.items():
            if name not in self.changes:
                continue
            for child in relation_changesets(relation, self.changes[name]):
                yield name, child


def relation_changesets(relation: RelationDescriptor, value: object) -> tuple[Changeset, ...]:
    if value is None:
        return ()
    if relation.cardinality is Cardinality.ONE:
        return (value,) if isinstance(value, Changeset) else ()
    if isinstance(value, tuple):
        return tuple(child for child in value if isinstance(child, Changeset))
    return ()


def wrap(data: Record | Changeset) -> Changeset:
    """Return ``data`` as a changeset, wrapping plain records."""

    if isinstance(data, Changeset):
        return data
    if isinstance(data, Record):
        return Changeset(data=data)
    raise TypeError(f"expected a Record or Changeset, got {type(data).__name__}")


def put_new_action(changeset: Changeset, action: Action) -> Changeset:
    if changeset.action is not None:
        return changeset
    return replace(changeset, action=action)


def add_error(changeset: Changeset, field: str, message: str, **metadata: object) -> Changeset:
    error = FieldError(field, message, metadata)
    return replace(changeset, errors=(*changeset.errors, error))


def put_scalar_change(changeset: Changeset, field: str, value: object) -> Changeset:
    """Record ``value`` for a scalar field, dropping the change if it equals the data."""

    changeset.schema.field_type(field)
    changes = dict(changeset.changes)
    if changeset.data.values.get(field) != value:
        changes[field] = value
    elif field in changes:
        del changes[field]
    else:
        return changeset
    return replace(changeset, changes=changes)


def force_change(changeset: Changeset, field: str, value: object) -> Changeset:
    """Record ``value`` for a scalar field even when it equals the current data."""

    if field in changeset.schema.relations:
        raise ChangesetError(f"cannot force a change on relation `{field}`; use put_relation")
    changeset.schema.field_type(field)
    return replace(changeset, changes={**changeset.changes, field: value})


def delete_change(changeset: Changeset, field: str) -> Changeset:
    if field not in changeset.changes:
        return changeset
    changes = dict(changeset.changes)
    del changes[field]
    return replace(changeset, changes=changes)


def get_change(changeset: Changeset, field: str, default: object = None) -> object:
    return changeset.changes.get(field, default)


def fetch_change(changeset: Changeset, field: str) -> object:
    """Return the registered change of ``field``; ``KeyError`` when there is none.

    Unlike ``get_change`` this tells a change to ``None`` apart from no change.
    """

    changeset.schema.ensure_field(field)
    try:
        return changeset.changes[field]
    except KeyError:
        raise KeyError(f"no change registered for `{field}`") from None


def fetch_field(changeset: Changeset, field: str) -> tuple[Literal["changes", "data"], object]:
    """Return where the effective value of ``field`` comes from, and the value.

    Relation changes are returned applied, as records.
    """

    changeset.schema.ensure_field(field)
    if field in changeset.changes:
        return "changes", _change_as_value(changeset, field, changeset.changes[field])
    return "data", changeset.data.values.get(field)


def get_field(changeset: Changeset, field: str, default: object = None) -> object:
    _, value = fetch_field(changeset, field)
    if value is None or isinstance(value, NotLoaded):
        return default
    return value


def apply_changes(changeset: Changeset) -> Record:
    """Return the record with all changes applied.

    Nested changesets are applied recursively; removed related items are left out.
    """

    if not changeset.changes:
        return changeset.data
    values = {
        name: _change_as_value(changeset, name, value) for name, value in changeset.changes.items()
    }
    return changeset.data.replace(**values)


def merge(first: Changeset, second: Changeset) -> Changeset:
    """Merge two changesets over the same data, ``second`` winning on conflicts."""

    if first.data != second.data:
        raise ChangesetMismatchError("different data when merging changesets")
    if first.action is not None and second.action is not None and first.action != second.action:
        raise ChangesetError(
            f"different actions (`{first.action}` and `{second.action}`) when merging changesets"
        )
    params: dict[str, object] | None = None
    if first.params is not None or second.params is not None:
        params = {**(first.params or {}), **(second.params or {})}
    return replace(
        first,
        params=params,
        changes={**first.changes, **second.changes},
        errors=(*first.errors, *second.errors),
        action=first.action or second.action,
        required=first.required | second.required,
        validations=(*first.validations, *second.validations),
        force_update=first.force_update or second.force_update,
    )


def _change_as_value(changeset: Changeset, field: str, value: object) -> object:
    relation = changeset.schema.relation(field)
    if relation is None:
        return value
    applied = [
        apply_changes(child)
        for child in relation_changesets(relation, value)
        if child.action not in REMOVAL_ACTIONS
    ]
    if relation.cardinality is Cardinality.MANY:
        return tuple(applied)
    return applied[0] if applied else None
