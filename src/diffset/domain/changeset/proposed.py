"""Proposed relation values, classified once at the entry of a diff.

The engine accepts heterogeneous proposed values for a relation field. They are
turned into one of the variants below before any diffing happens so the diff
itself can ``match`` on a closed set of shapes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from diffset.domain.errors import ProposedShapeError
from diffset.domain.model import Cardinality, Record, RecordState, RelationDescriptor

from .actions import REMOVAL_ACTIONS
from .changeset import Changeset


@dataclass(frozen=True, slots=True)
class Absent:
    """The relation key was not part of the proposed input at all."""


@dataclass(frozen=True, slots=True)
class ExplicitEmpty:
    """The caller explicitly proposed "no value" (``None``, or an empty list)."""


@dataclass(frozen=True, slots=True)
class Params:
    """Raw field map for one related item."""

    values: Mapping[str, object]


@dataclass(frozen=True, slots=True)
class PrebuiltChangeset:
    changeset: Changeset


@dataclass(frozen=True, slots=True)
class BareRecord:
    record: Record


type ProposedItem = Params | PrebuiltChangeset | BareRecord


@dataclass(frozen=True, slots=True)
class ProposedList:
    items: tuple[ProposedItem, ...]


type Proposed = Absent | ExplicitEmpty | ProposedItem | ProposedList

ABSENT = Absent()
EXPLICIT_EMPTY = ExplicitEmpty()


def classify(relation: RelationDescriptor, value: object) -> Proposed:
    """Classify a proposed value for ``relation``.

    Raises ``ProposedShapeError`` for values the relation cannot accept.
    """

    if value is None:
        return EXPLICIT_EMPTY
    if relation.cardinality is Cardinality.ONE:
        return classify_item(relation, value)
    if isinstance(value, (Changeset, Record, str, bytes)):
        raise ProposedShapeError(f"expected a list of items for `{relation.field}`, got {value!r}")
    if isinstance(value, Mapping):
        value = _indexed_items(relation, value)
    if not isinstance(value, Iterable):
        raise ProposedShapeError(f"expected a list of items for `{relation.field}`, got {value!r}")
    return ProposedList(tuple(classify_item(relation, item) for item in value))


def classify_item(relation: RelationDescriptor, value: object) -> ProposedItem:
    if isinstance(value, Changeset):
        return PrebuiltChangeset(value)
    if isinstance(value, Record):
        return BareRecord(value)
    if isinstance(value, Mapping):
        return Params(MappingProxyType(dict(value)))
    raise ProposedShapeError(f"expected a map for an item of `{relation.field}`, got {value!r}")


def is_removal(item: ProposedItem) -> bool:
    """True when the caller tagged the proposed item for removal."""

    match item:
        case BareRecord(record=record):
            return record.state is RecordState.DELETED
        case PrebuiltChangeset(changeset=changeset):
            return (
                changeset.action in REMOVAL_ACTIONS
                or changeset.data.state is RecordState.DELETED
            )
        case Params():
            return False


def _indexed_items(relation: RelationDescriptor, value: Mapping[object, object]) -> list[object]:
    """Order an index-keyed map (``{"0": {...}, "1": {...}}``) by its integer keys."""

    indexed: list[tuple[int, object]] = []
    for key, item in value.items():
        if isinstance(key, int) and not isinstance(key, bool):
            indexed.append((key, item))
        elif isinstance(key, str) and key.isdigit():
            indexed.append((int(key), item))
        else:
            raise ProposedShapeError(
                f"expected index keys in the map given for `{relation.field}`, got {key!r}"
            )
    return [item for _, item in sorted(indexed, key=lambda pair: pair[0])]
