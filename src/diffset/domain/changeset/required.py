"""Required-ness of relation fields.

A required relation is checked against its effective value: the registered
change when there is one, the current data otherwise. A relation that was
absent from the proposed input keeps its current value and only fails when
that value is empty.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from diffset.domain.model import NotLoaded, RecordState

from .actions import REMOVAL_ACTIONS
from .changeset import Changeset, add_error, relation_changesets

if TYPE_CHECKING:
    from diffset.domain.model import RelationDescriptor


def relation_is_empty(changeset: Changeset, relation: RelationDescriptor) -> bool | None:
    """Return whether the effective value of ``relation`` is empty.

    ``None`` means the answer is unknown because the relation was never loaded.
    """

    name = relation.field
    if name in changeset.changes:
        kept = [
            child
            for child in relation_changesets(relation, changeset.changes[name])
            if child.action not in REMOVAL_ACTIONS
        ]
        return not kept

    value = changeset.data.values.get(name)
    if isinstance(value, NotLoaded):
        if changeset.data.state is RecordState.BUILT:
            return True
        return None
    if relation.is_many:
        return not value
    return value is None


def validate_required_relation(
    changeset: Changeset,
    relation: RelationDescriptor,
    *,
    message: str = "can't be blank",
) -> Changeset:
    """Mark ``relation`` as required and add an error when it is effectively empty."""

    changeset = replace(changeset, required=changeset.required | {relation.field})
    if relation_is_empty(changeset, relation):
        return add_error(changeset, relation.field, message, validation="required")
    return changeset
