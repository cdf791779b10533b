"""Casting of raw proposed parameters into typed scalar changes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from functools import cache
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from diffset.config import get_engine_config
from diffset.domain.errors import ChangesetError

from .changeset import Changeset, add_error, delete_change, put_scalar_change, wrap

if TYPE_CHECKING:
    from collections.abc import Iterable

    from diffset.domain.model import Record

log = logging.getLogger(__name__)


@cache
def _type_adapter(field_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(field_type)


def cast_value(field_type: object, value: object) -> object:
    """Cast ``value`` to ``field_type``; ``None`` always casts to ``None``.

    Raises ``pydantic.ValidationError`` when the value cannot be cast.
    """

    if value is None:
        return None
    return _type_adapter(field_type).validate_python(value)


def cast_or_keep(field_type: object, value: object) -> object:
    """Cast ``value`` when possible, otherwise return it unchanged."""

    try:
        return cast_value(field_type, value)
    except ValidationError:
        return value


def type_name(field_type: object) -> str:
    return getattr(field_type, "__name__", None) or repr(field_type)


def normalize_params(params: Mapping[str, object]) -> dict[str, object]:
    if not isinstance(params, Mapping):
        raise ChangesetError(f"expected params to be a mapping, got {type(params).__name__}")
    normalized: dict[str, object] = {}
    for key, value in params.items():
        if not isinstance(key, str):
            raise ChangesetError(f"expected params to have string keys, got {key!r}")
        normalized[key] = value
    return normalized


def is_empty_value(value: object, empty_values: tuple[str, ...]) -> bool:
    return isinstance(value, str) and value in empty_values


def cast(
    data: Record | Changeset,
    params: Mapping[str, object],
    permitted: Iterable[str],
    *,
    empty_values: tuple[str, ...] | None = None,
) -> Changeset:
    """Cast the ``permitted`` scalar fields found in ``params`` onto ``data``.

    Values listed in ``empty_values`` (``EngineConfig.empty_values`` by default)
    are treated as ``None``. Values equal to the current data are not recorded as
    changes. Values that fail to cast add an ``"is invalid"`` error. Relation
    fields must go through ``cast_relation`` instead.
    """

    changeset = wrap(data)
    schema = changeset.schema
    params = normalize_params(params)
    if empty_values is None:
        empty_values = get_engine_config().empty_values

    for name in permitted:
        if name in schema.relations:
            raise ChangesetError(
                f"relation `{name}` cannot be cast as a field; use cast_relation instead"
            )
        field_type = schema.field_type(name)
        if name not in params:
            continue
        raw = params[name]
        if is_empty_value(raw, empty_values):
            raw = None
        try:
            value = cast_value(field_type, raw)
        except ValidationError:
            log.debug("Failed to cast %s.%s from %r", schema.name, name, raw)
            changeset = delete_change(changeset, name)
            changeset = add_error(
                changeset, name, "is invalid", type=type_name(field_type), validation="cast"
            )
            continue
        changeset = put_scalar_change(changeset, name, value)

    merged_params = {**(changeset.params or {}), **params}
    return replace(changeset, params=merged_params)
