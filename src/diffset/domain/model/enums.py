"""Domain enums (pure, dependency-free)."""

from __future__ import annotations

from enum import StrEnum


class RecordState(StrEnum):
    """Persistence state of a data record as known to the caller."""

    BUILT = "built"
    LOADED = "loaded"
    DELETED = "deleted"


class Cardinality(StrEnum):
    ONE = "one"
    MANY = "many"


class Ownership(StrEnum):
    """Who owns the lifecycle of a related item."""

    EMBEDDED = "embedded"
    REFERENCED = "referenced"


class OnReplace(StrEnum):
    """Behaviour when an existing related item is displaced or removed."""

    RAISE = "raise"
    MARK_INVALID = "mark_invalid"
    DELETE = "delete"
    NILIFY = "nilify"
    MERGE = "merge"
