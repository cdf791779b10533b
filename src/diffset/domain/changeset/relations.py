"""Entry points that register relation changes on an owner changeset.

``cast_relation`` diffs the raw params of a relation field, ``put_relation``
diffs records, changesets or change maps supplied by application code. Both
hand the classified value to the diff engine and register the result under
the relation field of the owner.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import TYPE_CHECKING

from diffset.config import get_engine_config
from diffset.domain.errors import (
    ChangesetError,
    ProposedShapeError,
    RelationNotLoadedError,
    UnknownFieldError,
)
from diffset.domain.model import ItemResolver, NotLoaded, Record, RecordState, as_resolver

from .casting import cast
from .changeset import Changeset, add_error, delete_change, put_scalar_change, wrap
from .diff import ItemStrategy, diff_relation
from .proposed import ABSENT, classify
from .required import validate_required_relation

if TYPE_CHECKING:
    from collections.abc import Callable

    from diffset.domain.model import RelationDescriptor, ResolverLike

    from .proposed import Proposed

log = logging.getLogger(__name__)


def cast_relation(
    changeset: Changeset,
    field: str,
    *,
    required: bool = False,
    required_message: str = "can't be blank",
    invalid_message: str = "is invalid",
    resolver: ResolverLike | None = None,
    force_update_on_change: bool = True,
) -> Changeset:
    """Diff ``changeset.params[field]`` against the current value of the relation.

    A missing key leaves the relation untouched. ``None`` (or an empty list or
    map for many-relations) proposes removing every current item. Each proposed
    map is resolved with ``resolver``, the relation's own resolver, or
    ``cast_all``.
    """

    relation = _relation(changeset, field)
    if changeset.params is None:
        raise ChangesetError(
            f"cast_relation on `{field}` requires a changeset built by cast with params"
        )

    if field in changeset.params:
        try:
            proposed = classify(relation, changeset.params[field])
        except ProposedShapeError:
            log.debug("Invalid shape for %s.%s", changeset.schema.name, field)
            return add_error(
                changeset, field, invalid_message, type=relation.value_type, validation="cast"
            )
    else:
        proposed = ABSENT

    item_resolver = _item_resolver(relation, resolver)
    strategy = ItemStrategy(
        from_params=item_resolver,
        from_record=change_record,
        empty_values=get_engine_config().empty_values,
    )
    result = _apply(
        changeset,
        relation,
        proposed,
        strategy,
        invalid_message=invalid_message,
        force_update_on_change=force_update_on_change,
    )
    if result is None:
        return changeset
    changeset = result
    if required:
        changeset = validate_required_relation(changeset, relation, message=required_message)
    return changeset


def put_relation(
    changeset: Changeset,
    field: str,
    value: object,
    *,
    force_update_on_change: bool = True,
) -> Changeset:
    """Register ``value`` (records, changesets or change maps) for relation ``field``."""

    relation = _relation(changeset, field)
    result = _apply(
        changeset,
        relation,
        classify(relation, value),
        _record_strategy(),
        invalid_message="is invalid",
        force_update_on_change=force_update_on_change,
    )
    return changeset if result is None else result


def change(data: Record | Changeset, changes: Mapping[str, object] | None = None) -> Changeset:
    """Wrap ``data`` in a changeset and register ``changes`` without casting."""

    changeset = wrap(data)
    for name, value in (changes or {}).items():
        changeset = put_change(changeset, name, value)
    return changeset


def put_change(changeset: Changeset, field: str, value: object) -> Changeset:
    if field in changeset.schema.relations:
        return put_relation(changeset, field, value)
    return put_scalar_change(changeset, field, value)


def update_change(
    changeset: Changeset, field: str, func: Callable[[object], object]
) -> Changeset:
    """Replace the registered change of ``field`` with ``func(change)``.

    Fields without a change are left alone. The new value goes through
    ``put_change``, so a value equal to the data drops the change.
    """

    if field not in changeset.changes:
        changeset.schema.ensure_field(field)
        return changeset
    return put_change(changeset, field, func(changeset.changes[field]))


def change_record(current: Record | None, record: Record) -> Changeset:
    """Changeset turning ``current`` into ``record``.

    Without ``current`` the record is new to the relation: a built record
    surfaces its loaded nested relations as nested changes.
    """

    if current is None:
        changeset = Changeset(data=record)
        if record.state is not RecordState.BUILT:
            return changeset
        for name, relation in record.schema.relations.items():
            value = record.values.get(name)
            if isinstance(value, NotLoaded) or value is None or value == ():
                continue
            diff = diff_relation(
                relation, classify(relation, value), relation.empty, record, _record_strategy()
            )
            if not diff.skip:
                changeset = replace(changeset, changes={**changeset.changes, name: diff.value})
        return changeset

    changeset = Changeset(data=current)
    for name in record.schema.fields:
        changeset = put_scalar_change(changeset, name, record.values.get(name))
    for name in record.schema.relations:
        if record.is_loaded(name):
            changeset = put_relation(changeset, name, record.values.get(name))
    return changeset


def cast_all(record: Record, params: Mapping[str, object]) -> Changeset:
    """Default item resolver: cast every known field present in ``params``.

    Relation keys found in ``params`` are cast recursively with their own
    resolvers.
    """

    changeset = cast(record, params, record.schema.fields)
    for name in record.schema.relations:
        if name in params:
            changeset = cast_relation(changeset, name)
    return changeset


DEFAULT_RESOLVER = ItemResolver(cast_all)


def _apply(
    changeset: Changeset,
    relation: RelationDescriptor,
    proposed: Proposed,
    strategy: ItemStrategy,
    *,
    invalid_message: str,
    force_update_on_change: bool,
) -> Changeset | None:
    """Diff ``proposed`` and register the outcome; ``None`` for a skipped unloaded relation."""

    field = relation.field
    owner = changeset.data
    current = owner.values.get(field)
    if isinstance(current, NotLoaded):
        if owner.state is RecordState.BUILT:
            current = relation.empty
        elif proposed is ABSENT:
            return None
        else:
            raise RelationNotLoadedError(owner.schema.name, field)

    diff = diff_relation(relation, proposed, current, owner, strategy)
    if diff.marked_invalid:
        return add_error(
            delete_change(changeset, field),
            field,
            invalid_message,
            type=relation.value_type,
            validation="on_replace",
        )
    if diff.skip:
        log.debug("No change for relation %s.%s", owner.schema.name, field)
        return delete_change(changeset, field)

    changeset = replace(changeset, changes={**changeset.changes, field: diff.value})
    if force_update_on_change:
        changeset = replace(changeset, force_update=True)
    return changeset


def _relation(changeset: Changeset, field: str) -> RelationDescriptor:
    relation = changeset.schema.relation(field)
    if relation is not None:
        return relation
    if field in changeset.schema.fields:
        raise ChangesetError(f"`{field}` of `{changeset.schema.name}` is not a relation")
    raise UnknownFieldError(changeset.schema.name, field)


def _item_resolver(relation: RelationDescriptor, resolver: ResolverLike | None) -> ItemResolver:
    if resolver is not None:
        return as_resolver(resolver)
    if isinstance(relation.resolver, ItemResolver):
        return relation.resolver
    return DEFAULT_RESOLVER


def _record_strategy() -> ItemStrategy:
    return ItemStrategy(
        from_params=change,
        from_record=change_record,
        empty_values=get_engine_config().empty_values,
    )
