"""Minimal schema declarations: field types, identity and relations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from diffset.domain.errors import UnknownFieldError

from .enums import Ownership, RecordState
from .record import NotLoaded, Record

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .relation import RelationDescriptor


@dataclass(eq=False, slots=True)
class Schema:
    """Declared shape of one record type.

    ``fields`` maps scalar field names to a type annotation understood by
    pydantic (``int``, ``str | None``, ``list[str]``, ``datetime``...).
    ``relations`` maps relation field names to their descriptors and can be
    extended after construction so schemas may reference each other.
    """

    name: str
    fields: dict[str, object]
    primary_key: tuple[str, ...] = ("id",)
    relations: dict[str, RelationDescriptor] = field(
        default_factory=dict["str", "RelationDescriptor"]
    )

    def __post_init__(self) -> None:
        self.primary_key = tuple(self.primary_key)
        for key in self.primary_key:
            if key not in self.fields:
                raise UnknownFieldError(self.name, key)
        for relation in list(self.relations.values()):
            self._check_relation_name(relation.field)

    def __repr__(self) -> str:
        return f"Schema({self.name!r})"

    def add_relation(self, relation: RelationDescriptor) -> RelationDescriptor:
        self._check_relation_name(relation.field)
        self.relations[relation.field] = relation
        return relation

    def relation(self, name: str) -> RelationDescriptor | None:
        return self.relations.get(name)

    def field_type(self, name: str) -> object:
        try:
            return self.fields[name]
        except KeyError:
            raise UnknownFieldError(self.name, name) from None

    def ensure_field(self, name: str) -> None:
        if name not in self.fields and name not in self.relations:
            raise UnknownFieldError(self.name, name)

    def build(self, **values: object) -> Record:
        """Return a record that has never been persisted."""

        return self.record(values, state=RecordState.BUILT)

    def load(self, **values: object) -> Record:
        """Return a record as it would come back from storage."""

        return self.record(values, state=RecordState.LOADED)

    def record(self, values: Mapping[str, object], *, state: RecordState) -> Record:
        for name in values:
            self.ensure_field(name)
        complete: dict[str, object] = dict.fromkeys(self.fields)
        for name, relation in self.relations.items():
            if relation.ownership is Ownership.EMBEDDED:
                complete[name] = relation.empty
            else:
                complete[name] = NotLoaded(name, relation.cardinality)
        complete.update(values)
        return Record(schema=self, values=complete, state=state)

    def _check_relation_name(self, name: str) -> None:
        if name in self.fields:
            raise ValueError(f"relation `{name}` clashes with a field of schema `{self.name}`")
