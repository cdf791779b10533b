"""Replacement policy: what happens to a related item that is displaced.

Policies:
- ``raise``: ``ReplacementError``, nothing is dropped silently
- ``mark_invalid``: ``MarkedInvalid``; the owner gets an error and no change
- ``delete``: ``REPLACE`` changeset persisted as a delete
- ``nilify``: ``REPLACE`` changeset persisted as an update clearing ``related_key``
- ``merge``: handled by the single item diff; a plain removal raises
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from diffset.domain.errors import MissingIdentityError, ReplacementError
from diffset.domain.model import OnReplace, Ownership

from .actions import Action
from .changeset import Changeset

if TYPE_CHECKING:
    from diffset.domain.model import Record, RelationDescriptor

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MarkedInvalid:
    """The displaced item may not be removed; the owner must be marked invalid."""

    relation: RelationDescriptor
    record: Record


type ReplacementOutcome = Changeset | MarkedInvalid


def resolve_replacement(
    relation: RelationDescriptor,
    record: Record,
    *,
    owner_name: str,
) -> ReplacementOutcome:
    """Apply ``relation.on_replace`` to ``record``, the item being displaced."""

    log.debug(
        "Displacing %s %r from %s.%s with policy %s",
        record.schema.name,
        record.identity,
        owner_name,
        relation.field,
        relation.on_replace,
    )
    match relation.on_replace:
        case OnReplace.RAISE:
            raise ReplacementError(
                owner_name,
                relation.field,
                record,
                reason="the on_replace policy is `raise` and this item would be removed",
            )
        case OnReplace.MARK_INVALID:
            return MarkedInvalid(relation, record)
        case OnReplace.DELETE:
            _require_identity(relation, record)
            return Changeset(data=record, action=Action.REPLACE, replace_action=Action.DELETE)
        case OnReplace.NILIFY:
            _require_identity(relation, record)
            changes: dict[str, object] = {}
            if relation.related_key is not None:
                changes[relation.related_key] = None
            return Changeset(
                data=record,
                changes=changes,
                action=Action.REPLACE,
                replace_action=Action.UPDATE,
            )
        case OnReplace.MERGE:
            raise ReplacementError(
                owner_name,
                relation.field,
                record,
                reason="the on_replace policy `merge` has no new item to merge into",
            )


def _require_identity(relation: RelationDescriptor, record: Record) -> None:
    # embedded items are rewritten with their owner and may lack identity
    if relation.ownership is Ownership.REFERENCED and record.persisted and not record.has_identity:
        raise MissingIdentityError(record, "replace")
