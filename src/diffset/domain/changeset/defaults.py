"""Base records for brand new related items."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from diffset.domain.errors import ChangesetMismatchError
from diffset.domain.model import DefaultFactory, Ownership, Record

if TYPE_CHECKING:
    from diffset.domain.model import RelationDescriptor

log = logging.getLogger(__name__)


def build_related(relation: RelationDescriptor, owner: Record) -> Record:
    """Build the base record for a new item of ``relation`` owned by ``owner``.

    Referenced relations get their ``related_key`` pre-populated from the owner's
    ``owner_key`` when the owner already has a value for it. The relation's
    defaults are applied afterwards, so a factory sees the populated key.
    """

    record = relation.related.build()
    if (
        relation.ownership is Ownership.REFERENCED
        and relation.related_key is not None
        and relation.owner_key is not None
    ):
        owner_value = owner.values.get(relation.owner_key)
        if owner_value is not None:
            record = record.replace(**{relation.related_key: owner_value})

    match relation.defaults:
        case None:
            return record
        case DefaultFactory() as factory:
            built = factory(record, owner)
            if not isinstance(built, Record) or built.schema is not relation.related:
                raise ChangesetMismatchError(
                    f"defaults for `{relation.field}` must return a `{relation.related.name}` "
                    f"record, got {built!r}"
                )
            log.debug("Built %s from dynamic defaults for `%s`", built, relation.field)
            return built
        case Mapping() as static:
            return record.replace(**static)
