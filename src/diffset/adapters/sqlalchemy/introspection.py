"""Build ``Schema`` graphs from SQLAlchemy mapper metadata."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper, RelationshipDirection

from diffset.config import get_engine_config
from diffset.domain.model import Cardinality, OnReplace, Ownership, RelationDescriptor, Schema

if TYPE_CHECKING:
    from sqlalchemy import Column
    from sqlalchemy.orm import ColumnProperty, RelationshipProperty

    from diffset.config import EngineConfig

log = logging.getLogger(__name__)


def schema_from_mapper(mapped_class: type[Any], *, config: EngineConfig | None = None) -> Schema:
    """Return the schema of ``mapped_class`` with its relations resolved recursively.

    Only relationships pointing away from the owner (one-to-many, one-to-one and
    many-to-many) become relations; many-to-one relationships are the child side
    of some other relation and are skipped.
    """

    config = config or get_engine_config()
    mapper: Mapper[Any] = inspect(mapped_class)
    return _schema_for(mapper, {}, config)


def python_type(column: Column[Any]) -> object:
    """Python type used to cast values of ``column``; nullable columns accept ``None``."""

    try:
        base: Any = column.type.python_type
    except NotImplementedError:
        return Any
    if column.nullable or column.primary_key:
        return base | None
    return base


def _schema_for(
    mapper: Mapper[Any],
    schemas: dict[Mapper[Any], Schema],
    config: EngineConfig,
) -> Schema:
    if mapper in schemas:
        return schemas[mapper]

    fields = {prop.key: _column_type(prop) for prop in mapper.column_attrs}
    primary_key = tuple(mapper.get_property_by_column(column).key for column in mapper.primary_key)
    schema = Schema(name=mapper.class_.__name__, fields=fields, primary_key=primary_key)
    schemas[mapper] = schema

    for prop in mapper.relationships:
        if prop.direction is RelationshipDirection.MANYTOONE:
            continue
        related = _schema_for(prop.mapper, schemas, config)
        schema.add_relation(_relation_for(mapper, prop, related, config))
    return schema


def _column_type(prop: ColumnProperty[Any]) -> object:
    return python_type(prop.columns[0])  # pyright: ignore[reportArgumentType]


def _relation_for(
    mapper: Mapper[Any],
    prop: RelationshipProperty[Any],
    related: Schema,
    config: EngineConfig,
) -> RelationDescriptor:
    related_key: str | None = None
    owner_key: str | None = None
    if prop.direction is RelationshipDirection.ONETOMANY and len(prop.local_remote_pairs) == 1:
        local, remote = prop.local_remote_pairs[0]
        owner_key = mapper.get_property_by_column(local).key
        related_key = prop.mapper.get_property_by_column(remote).key

    if prop.cascade.delete_orphan:
        on_replace = OnReplace.DELETE
    else:
        on_replace = config.default_on_replace
        if on_replace is OnReplace.NILIFY and related_key is None:
            # no foreign key on the related side to clear (e.g. many-to-many)
            on_replace = OnReplace.DELETE
        elif on_replace is OnReplace.MERGE and prop.uselist:
            on_replace = OnReplace.RAISE

    log.debug(
        "Mapped relationship %s.%s (%s, on_replace=%s)",
        mapper.class_.__name__,
        prop.key,
        prop.direction.name,
        on_replace,
    )
    return RelationDescriptor(
        field=prop.key,
        related=related,
        cardinality=Cardinality.MANY if prop.uselist else Cardinality.ONE,
        ownership=Ownership.REFERENCED,
        on_replace=on_replace,
        related_key=related_key,
        owner_key=owner_key,
    )
