"""Turn mapped ORM instances into ``Record`` snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect

from diffset.domain.model import NotLoaded, Record, RecordState

if TYPE_CHECKING:
    from sqlalchemy.orm import InstanceState

    from diffset.domain.model import RelationDescriptor, Schema


def snapshot(instance: object, schema: Schema) -> Record:
    """Snapshot ``instance`` as a record of ``schema``.

    Relationships that were never loaded become ``NotLoaded``; they are never
    lazy loaded here. Column attributes are read through the instance so expired
    columns are refreshed by the session as usual.
    """

    state: InstanceState[Any] = inspect(instance)
    values: dict[str, object] = {name: getattr(instance, name) for name in schema.fields}
    for name, relation in schema.relations.items():
        values[name] = _relation_value(state, relation)
    return Record(schema=schema, values=values, state=record_state(state))


def record_state(state: InstanceState[Any]) -> RecordState:
    if state.deleted or state.was_deleted:
        return RecordState.DELETED
    if state.has_identity:
        return RecordState.LOADED
    return RecordState.BUILT


def _relation_value(state: InstanceState[Any], relation: RelationDescriptor) -> object:
    name = relation.field
    if name not in state.dict:
        return NotLoaded(name, relation.cardinality)
    value = state.dict[name]
    if relation.is_many:
        return tuple(snapshot(item, relation.related) for item in value or ())
    if value is None:
        return None
    return snapshot(value, relation.related)
