"""Immutable data record snapshots consumed by the changeset engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from .enums import Cardinality, RecordState

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import Schema


@dataclass(frozen=True, slots=True)
class NotLoaded:
    """Marker stored in a relation field whose value was never fetched.

    This is distinct from a loaded-but-empty relation (``None`` or ``[]``).
    """

    field: str
    cardinality: Cardinality

    def __repr__(self) -> str:
        return f"<relation {self.field!r} not loaded>"


@dataclass(frozen=True, slots=True)
class Record:
    """Read-only snapshot of one record of ``schema``.

    ``values`` holds scalar fields and relation fields alike. Relation values are
    ``Record`` / ``None`` for cardinality one, a tuple of ``Record`` for
    cardinality many, or ``NotLoaded``.
    """

    schema: Schema
    values: Mapping[str, object] = field(default_factory=dict)
    state: RecordState = RecordState.BUILT

    def __post_init__(self) -> None:
        values = dict(self.values)
        for name, relation in self.schema.relations.items():
            value = values.get(name)
            if relation.cardinality is Cardinality.MANY and isinstance(value, list):
                values[name] = tuple(value)
        object.__setattr__(self, "values", MappingProxyType(values))

    def __getitem__(self, name: str) -> object:
        return self.values[name]

    def get(self, name: str, default: object = None) -> object:
        return self.values.get(name, default)

    @property
    def identity(self) -> tuple[object, ...]:
        return tuple(self.values.get(key) for key in self.schema.primary_key)

    @property
    def has_identity(self) -> bool:
        identity = self.identity
        return bool(identity) and all(value is not None for value in identity)

    @property
    def persisted(self) -> bool:
        return self.state is not RecordState.BUILT

    def is_loaded(self, name: str) -> bool:
        return not isinstance(self.values.get(name), NotLoaded)

    def replace(self, **values: object) -> Record:
        """Return a copy with ``values`` applied."""

        for name in values:
            self.schema.ensure_field(name)
        return Record(schema=self.schema, values={**self.values, **values}, state=self.state)

    def with_state(self, state: RecordState) -> Record:
        return Record(schema=self.schema, values=self.values, state=state)
