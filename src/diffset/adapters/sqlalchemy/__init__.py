"""SQLAlchemy adapter: schemas from mappers and records from ORM instances."""

from __future__ import annotations

from .introspection import python_type, schema_from_mapper
from .snapshot import record_state, snapshot

__all__ = [
    "python_type",
    "record_state",
    "schema_from_mapper",
    "snapshot",
]
