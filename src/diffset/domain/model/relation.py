"""Relation descriptors attached to schema fields.

A descriptor is immutable configuration: cardinality, ownership, the on-replace
policy and the strategies used to build and resolve related items. Invalid
option combinations are rejected when the descriptor is created.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING

from diffset.config.errors import InvalidRelationError

from .enums import Cardinality, OnReplace, Ownership

if TYPE_CHECKING:
    from diffset.domain.changeset import Changeset

    from .record import Record
    from .schema import Schema


@dataclass(frozen=True, slots=True)
class DefaultFactory:
    """Dynamic default provider.

    ``func`` is called as ``func(new_record, owner, *args)`` and returns the
    record used as the base of a brand new related item.
    """

    func: Callable[..., Record]
    args: tuple[object, ...] = ()

    def __call__(self, record: Record, owner: Record) -> Record:
        return self.func(record, owner, *self.args)


@dataclass(frozen=True, slots=True)
class ItemResolver:
    """Strategy turning one proposed parameter map into a changeset.

    ``func`` is called as ``func(record, params, *args)`` where ``record`` is the
    current related item, or a freshly built one for new items.
    """

    func: Callable[..., Changeset]
    args: tuple[object, ...] = ()

    def __call__(self, record: Record, params: Mapping[str, object]) -> Changeset:
        return self.func(record, params, *self.args)


type Defaults = Mapping[str, object] | DefaultFactory
type ResolverLike = ItemResolver | Callable[..., Changeset]


def as_resolver(resolver: ResolverLike) -> ItemResolver:
    if isinstance(resolver, ItemResolver):
        return resolver
    return ItemResolver(resolver)


@dataclass(frozen=True, slots=True, kw_only=True)
class RelationDescriptor:
    """Configuration of one nested relation field.

    ``related_key`` names the field on the related schema that points back to the
    owner (referenced relations only); ``owner_key`` names the owner field it
    points to. Both are needed for ``nilify`` and for pre-populating new items.
    """

    field: str
    related: Schema
    cardinality: Cardinality
    ownership: Ownership = Ownership.EMBEDDED
    on_replace: OnReplace = OnReplace.RAISE
    defaults: Defaults | Callable[..., Record] | None = None
    resolver: ResolverLike | None = None
    related_key: str | None = None
    owner_key: str | None = None

    def __post_init__(self) -> None:
        if self.on_replace is OnReplace.MERGE and self.cardinality is Cardinality.MANY:
            raise InvalidRelationError(
                f"invalid on_replace `merge` for `{self.field}`: "
                "merge is only supported for cardinality one"
            )
        if self.on_replace is OnReplace.NILIFY:
            if self.ownership is Ownership.EMBEDDED:
                raise InvalidRelationError(
                    f"invalid on_replace `nilify` for embedded relation `{self.field}`"
                )
            if self.related_key is None:
                raise InvalidRelationError(
                    f"on_replace `nilify` for `{self.field}` requires a related_key to clear"
                )
        if not self.related.primary_key:
            raise InvalidRelationError(
                f"related schema `{self.related.name}` of `{self.field}` has no identity fields"
            )
        if self.related_key is not None and self.related_key not in self.related.fields:
            raise InvalidRelationError(
                f"related_key `{self.related_key}` is not a field of `{self.related.name}`"
            )

        if self.defaults is not None and not isinstance(self.defaults, (DefaultFactory, Mapping)):
            object.__setattr__(self, "defaults", DefaultFactory(self.defaults))
        elif isinstance(self.defaults, Mapping):
            for name in self.defaults:
                self.related.ensure_field(name)
            object.__setattr__(self, "defaults", MappingProxyType(dict(self.defaults)))
        if self.resolver is not None:
            object.__setattr__(self, "resolver", as_resolver(self.resolver))

    @property
    def empty(self) -> Record | tuple[Record, ...] | None:
        return () if self.cardinality is Cardinality.MANY else None

    @property
    def is_many(self) -> bool:
        return self.cardinality is Cardinality.MANY

    @property
    def value_type(self) -> str:
        """Type name reported in error metadata."""

        return "list[map]" if self.is_many else "map"


def embeds_one(
    name: str,
    related: Schema,
    *,
    on_replace: OnReplace | None = None,
    defaults: Defaults | Callable[..., Record] | None = None,
    resolver: ResolverLike | None = None,
) -> RelationDescriptor:
    return RelationDescriptor(
        field=name,
        related=related,
        cardinality=Cardinality.ONE,
        ownership=Ownership.EMBEDDED,
        on_replace=on_replace or _default_on_replace(embedded=True),
        defaults=defaults,
        resolver=resolver,
    )


def embeds_many(
    name: str,
    related: Schema,
    *,
    on_replace: OnReplace | None = None,
    defaults: Defaults | Callable[..., Record] | None = None,
    resolver: ResolverLike | None = None,
) -> RelationDescriptor:
    return RelationDescriptor(
        field=name,
        related=related,
        cardinality=Cardinality.MANY,
        ownership=Ownership.EMBEDDED,
        on_replace=on_replace or _default_on_replace(embedded=True),
        defaults=defaults,
        resolver=resolver,
    )


def has_one(
    name: str,
    related: Schema,
    *,
    related_key: str | None = None,
    owner_key: str | None = "id",
    on_replace: OnReplace | None = None,
    defaults: Defaults | Callable[..., Record] | None = None,
    resolver: ResolverLike | None = None,
) -> RelationDescriptor:
    return RelationDescriptor(
        field=name,
        related=related,
        cardinality=Cardinality.ONE,
        ownership=Ownership.REFERENCED,
        on_replace=on_replace or _default_on_replace(),
        defaults=defaults,
        resolver=resolver,
        related_key=related_key,
        owner_key=owner_key,
    )


def has_many(
    name: str,
    related: Schema,
    *,
    related_key: str | None = None,
    owner_key: str | None = "id",
    on_replace: OnReplace | None = None,
    defaults: Defaults | Callable[..., Record] | None = None,
    resolver: ResolverLike | None = None,
) -> RelationDescriptor:
    return RelationDescriptor(
        field=name,
        related=related,
        cardinality=Cardinality.MANY,
        ownership=Ownership.REFERENCED,
        on_replace=on_replace or _default_on_replace(),
        defaults=defaults,
        resolver=resolver,
        related_key=related_key,
        owner_key=owner_key,
    )


def _default_on_replace(*, embedded: bool = False) -> OnReplace:
    from diffset.config.engine import get_engine_config  # noqa: PLC0415

    policy = get_engine_config().default_on_replace
    # embedded items have no foreign key to clear
    if embedded and policy is OnReplace.NILIFY:
        return OnReplace.DELETE
    return policy
