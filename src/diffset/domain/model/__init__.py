"""Public domain model surface."""

from __future__ import annotations

from diffset.domain.model.enums import Cardinality, OnReplace, Ownership, RecordState
from diffset.domain.model.record import NotLoaded, Record
from diffset.domain.model.relation import (
    DefaultFactory,
    Defaults,
    ItemResolver,
    RelationDescriptor,
    as_resolver,
    embeds_many,
    embeds_one,
    has_many,
    has_one,
)
from diffset.domain.model.schema import Schema

__all__ = [
    "Cardinality",
    "DefaultFactory",
    "Defaults",
    "ItemResolver",
    "NotLoaded",
    "OnReplace",
    "Ownership",
    "Record",
    "RecordState",
    "RelationDescriptor",
    "Schema",
    "as_resolver",
    "embeds_many",
    "embeds_one",
    "has_many",
    "has_one",
]
