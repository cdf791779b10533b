"""Relation diff engine.

Resolves the proposed value of one relation field against the current related
item(s) of the owner and returns nested changesets tagged with an action.

Matching between current and proposed items is always by identity, never by
position. For cardinality many the result order is: current items that were
not matched (as replacements, in their original order), then the proposed
items in proposed order. An item new to the relation is always reported as a
change, even when its own changeset holds no field changes.

The engine is pure: it never mutates its inputs and performs no I/O. Schema
graphs are assumed to be trees at runtime; there is no cycle detection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from diffset.domain.errors import (
    ChangesetMismatchError,
    DuplicateIdentityError,
    InvalidActionError,
    MissingIdentityError,
)
from diffset.domain.model import Cardinality, OnReplace, Ownership, Record, RecordState

from .actions import Action
from .casting import cast_or_keep, is_empty_value
from .changeset import Changeset, apply_changes, get_field, put_new_action, put_scalar_change
from .defaults import build_related
from .proposed import (
    Absent,
    BareRecord,
    ExplicitEmpty,
    Params,
    PrebuiltChangeset,
    ProposedList,
    is_removal,
)
from .replace import MarkedInvalid, resolve_replacement

if TYPE_CHECKING:
    from diffset.domain.model import RelationDescriptor

    from .proposed import Proposed, ProposedItem

log = logging.getLogger(__name__)


type ParamsResolver = Callable[[Record, Mapping[str, object]], Changeset]
type RecordResolver = Callable[[Record | None, Record], Changeset]


@dataclass(frozen=True, slots=True)
class ItemStrategy:
    """How single items are turned into changesets during one diff.

    ``from_params`` resolves a raw field map against a current or freshly built
    record. ``from_record`` resolves a bare record against the current item, or
    against nothing when the record is new to the relation.
    """

    from_params: ParamsResolver
    from_record: RecordResolver
    empty_values: tuple[str, ...] = ("",)


@dataclass(frozen=True, slots=True)
class RelationDiff:
    """Outcome of diffing one relation field.

    ``skip`` means no relation change: the caller should leave the field alone.
    ``marked_invalid`` means a displaced item could not be removed and the owner
    must be flagged instead of changed.
    """

    value: Changeset | tuple[Changeset, ...] | None = None
    skip: bool = False
    marked_invalid: bool = False


SKIPPED = RelationDiff(skip=True)
MARKED_INVALID = RelationDiff(marked_invalid=True)


def diff_relation(
    relation: RelationDescriptor,
    proposed: Proposed,
    current: Record | Sequence[Record] | None,
    owner: Record,
    strategy: ItemStrategy,
) -> RelationDiff:
    """Diff ``proposed`` against ``current`` for ``relation`` of ``owner``."""

    if relation.cardinality is Cardinality.ONE:
        if current is not None and not isinstance(current, Record):
            raise ChangesetMismatchError(f"expected one current item for `{relation.field}`")
        return diff_one(relation, proposed, current, owner, strategy)

    if isinstance(current, Record):
        raise ChangesetMismatchError(f"expected a list of current items for `{relation.field}`")
    return diff_many(relation, proposed, tuple(current or ()), owner, strategy)


def diff_one(
    relation: RelationDescriptor,
    proposed: Proposed,
    current: Record | None,
    owner: Record,
    strategy: ItemStrategy,
) -> RelationDiff:
    match proposed:
        case Absent():
            return SKIPPED
        case ExplicitEmpty():
            if current is None:
                return SKIPPED
            outcome = resolve_replacement(relation, current, owner_name=owner.schema.name)
            if isinstance(outcome, MarkedInvalid):
                return MARKED_INVALID
            return RelationDiff(value=outcome)
        case ProposedList():
            raise ChangesetMismatchError(f"expected a single item for `{relation.field}`")
        case item:
            pass

    matched = current is not None
    if current is None:
        changeset = _new_item(relation, item, owner, strategy)
    elif _same_identity(_identity(relation, item, strategy), current):
        if is_removal(item):
            return _removal(relation, current, owner)
        changeset = _update_item(relation, item, current, strategy)
    elif relation.on_replace is OnReplace.MERGE:
        changeset = _merge_item(relation, item, current, owner, strategy)
    else:
        matched = False
        changeset = _new_item(relation, item, owner, strategy)
        if changeset.action is Action.IGNORE:
            log.debug("Ignoring new item for %s.%s", owner.schema.name, relation.field)
            return SKIPPED
        outcome = resolve_replacement(relation, current, owner_name=owner.schema.name)
        if isinstance(outcome, MarkedInvalid):
            return MARKED_INVALID
        changeset = replace(changeset, displaced=outcome)

    if changeset.action is Action.IGNORE:
        log.debug("Ignoring item for %s.%s", owner.schema.name, relation.field)
        return SKIPPED
    return RelationDiff(value=changeset, skip=matched and is_noop(changeset))


def diff_many(
    relation: RelationDescriptor,
    proposed: Proposed,
    current: tuple[Record, ...],
    owner: Record,
    strategy: ItemStrategy,
) -> RelationDiff:
    match proposed:
        case Absent():
            return SKIPPED
        case ExplicitEmpty():
            items: tuple[ProposedItem, ...] = ()
        case ProposedList(items=items):
            pass
        case _:
            raise ChangesetMismatchError(f"expected a list of items for `{relation.field}`")

    identities = [_identity(relation, item, strategy) for item in items]
    proposed_identities: set[tuple[object, ...]] = set()
    for identity in identities:
        if identity is None:
            continue
        if identity in proposed_identities:
            raise DuplicateIdentityError(relation.field, identity)
        proposed_identities.add(identity)

    current_by_identity: dict[tuple[object, ...], Record] = {}
    replaced: list[Changeset] = []
    for record in current:
        identity = _record_identity(record)
        if identity is not None and identity in proposed_identities:
            current_by_identity[identity] = record
            continue
        outcome = resolve_replacement(relation, record, owner_name=owner.schema.name)
        if isinstance(outcome, MarkedInvalid):
            return MARKED_INVALID
        replaced.append(outcome)

    processed: list[Changeset] = []
    attached = False
    for item, identity in zip(items, identities, strict=True):
        matched = current_by_identity.get(identity) if identity is not None else None
        if matched is None:
            changeset = _new_item(relation, item, owner, strategy)
        elif is_removal(item):
            outcome = resolve_replacement(relation, matched, owner_name=owner.schema.name)
            if isinstance(outcome, MarkedInvalid):
                return MARKED_INVALID
            changeset = outcome
        else:
            changeset = _update_item(relation, item, matched, strategy)

        if changeset.action is Action.IGNORE:
            log.debug("Ignoring item %r for %s.%s", identity, owner.schema.name, relation.field)
            continue
        attached = attached or matched is None
        processed.append(changeset)

    changesets = (*replaced, *processed)
    skip = not attached and all(is_noop(changeset) for changeset in changesets)
    return RelationDiff(value=changesets, skip=skip)


def is_noop(changeset: Changeset) -> bool:
    """True for a valid update that changes nothing."""

    return (
        changeset.action is Action.UPDATE
        and not changeset.changes
        and not changeset.force_update
        and changeset.valid
    )


def _removal(relation: RelationDescriptor, current: Record, owner: Record) -> RelationDiff:
    outcome = resolve_replacement(relation, current, owner_name=owner.schema.name)
    if isinstance(outcome, MarkedInvalid):
        return MARKED_INVALID
    return RelationDiff(value=outcome)


def _new_item(
    relation: RelationDescriptor,
    item: ProposedItem,
    owner: Record,
    strategy: ItemStrategy,
) -> Changeset:
    match item:
        case Params(values=values):
            base = build_related(relation, owner)
            changeset = strategy.from_params(base, values)
            return _checked(relation, changeset, Action.INSERT)
        case PrebuiltChangeset(changeset=changeset):
            _check_schema(relation, changeset.data)
            changeset = _checked(relation, changeset, _state_action(changeset.data))
        case BareRecord(record=record):
            _check_schema(relation, record)
            changeset = strategy.from_record(None, record)
            changeset = _checked(relation, changeset, _state_action(record))
    return _link(relation, changeset, owner)


def _link(relation: RelationDescriptor, changeset: Changeset, owner: Record) -> Changeset:
    """Point an existing item attached to ``owner`` at it through ``related_key``."""

    if (
        relation.ownership is not Ownership.REFERENCED
        or relation.related_key is None
        or relation.owner_key is None
        or changeset.action not in (Action.INSERT, Action.UPDATE)
    ):
        return changeset
    owner_value = owner.values.get(relation.owner_key)
    if owner_value is None or get_field(changeset, relation.related_key) == owner_value:
        return changeset
    return put_scalar_change(changeset, relation.related_key, owner_value)


def _update_item(
    relation: RelationDescriptor,
    item: ProposedItem,
    current: Record,
    strategy: ItemStrategy,
) -> Changeset:
    match item:
        case Params(values=values):
            changeset = strategy.from_params(current, values)
        case PrebuiltChangeset(changeset=changeset):
            _check_schema(relation, changeset.data)
        case BareRecord(record=record):
            _check_schema(relation, record)
            changeset = strategy.from_record(current, record)
    return _checked(relation, changeset, _matched_action(current))


def _merge_item(
    relation: RelationDescriptor,
    item: ProposedItem,
    current: Record,
    owner: Record,
    strategy: ItemStrategy,
) -> Changeset:
    """Apply the proposed fields onto ``current``, keeping its identity.

    The merged item stays linked to ``owner``. Errors and validations of a
    prebuilt changeset are carried over onto the merged one.
    """

    primary_key = relation.related.primary_key
    match item:
        case Params(values=values):
            kept = {key: value for key, value in values.items() if key not in primary_key}
            changeset = strategy.from_params(current, kept)
        case PrebuiltChangeset(changeset=prebuilt):
            _check_schema(relation, prebuilt.data)
            record = apply_changes(prebuilt)
            changeset = strategy.from_record(current, _with_identity_of(record, current))
            changeset = replace(
                changeset,
                errors=(*changeset.errors, *prebuilt.errors),
                validations=(*changeset.validations, *prebuilt.validations),
                required=changeset.required | prebuilt.required,
            )
        case BareRecord(record=record):
            _check_schema(relation, record)
            changeset = strategy.from_record(current, _with_identity_of(record, current))
    log.debug("Merged proposed item into %s %r", current.schema.name, current.identity)
    return _link(relation, _checked(relation, changeset, _matched_action(current)), owner)


def _with_identity_of(record: Record, current: Record) -> Record:
    identity = dict(zip(current.schema.primary_key, current.identity, strict=True))
    return record.replace(**identity)


def _identity(
    relation: RelationDescriptor,
    item: ProposedItem,
    strategy: ItemStrategy,
) -> tuple[object, ...] | None:
    schema = relation.related
    match item:
        case Params(values=values):
            identity = tuple(
                _param_identity(schema.field_type(key), values.get(key), strategy)
                for key in schema.primary_key
            )
        case PrebuiltChangeset(changeset=changeset):
            identity = tuple(get_field(changeset, key) for key in schema.primary_key)
        case BareRecord(record=record):
            identity = record.identity
    if any(value is None for value in identity):
        return None
    return identity


def _param_identity(field_type: object, value: object, strategy: ItemStrategy) -> object:
    if is_empty_value(value, strategy.empty_values):
        return None
    return cast_or_keep(field_type, value)


def _same_identity(identity: tuple[object, ...] | None, current: Record) -> bool:
    return identity is not None and identity == _record_identity(current)


def _record_identity(record: Record) -> tuple[object, ...] | None:
    return record.identity if record.has_identity else None


def _state_action(record: Record) -> Action:
    match record.state:
        case RecordState.LOADED:
            return Action.UPDATE
        case RecordState.DELETED:
            return Action.DELETE
        case RecordState.BUILT:
            return Action.INSERT


def _matched_action(current: Record) -> Action:
    # a matched item that was never persisted is still an insert
    return Action.INSERT if current.state is RecordState.BUILT else Action.UPDATE


def _checked(relation: RelationDescriptor, changeset: Changeset, default: Action) -> Changeset:
    if not isinstance(changeset, Changeset):
        raise ChangesetMismatchError(
            f"item resolver for `{relation.field}` must return a Changeset, got {changeset!r}"
        )
    _check_schema(relation, changeset.data)
    changeset = put_new_action(changeset, default)
    data = changeset.data
    match changeset.action:
        case Action.INSERT if data.state is RecordState.LOADED:
            raise InvalidActionError(
                f"cannot insert `{data.schema.name}` record {data.identity!r} "
                "that is already persisted"
            )
        case Action.UPDATE | Action.DELETE if not data.has_identity:
            raise MissingIdentityError(data, changeset.action.value)
        case _:
            return changeset


def _check_schema(relation: RelationDescriptor, record: Record) -> None:
    if record.schema is not relation.related:
        raise ChangesetMismatchError(
            f"expected a `{relation.related.name}` item for `{relation.field}`, "
            f"got a `{record.schema.name}` item"
        )
