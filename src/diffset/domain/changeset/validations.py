"""Field-level validations.

Every validator records ``(field, metadata)`` in ``Changeset.validations``
whether or not it fails, so the full set of obligations can be reported with
``traverse_validations``. Validators other than ``validate_required`` only look
at values present in ``changes``.
"""

from __future__ import annotations

import operator
import re
from collections.abc import Callable, Collection, Iterable, Sized
from dataclasses import replace
from typing import TYPE_CHECKING

from .changeset import Changeset, FieldError, get_field
from .required import relation_is_empty

if TYPE_CHECKING:
    from collections.abc import Mapping

type Validator = Callable[[str, object], Iterable[FieldError]]

_NUMBER_CHECKS: dict[str, tuple[Callable[[object, object], bool], str]] = {
    "less_than": (operator.lt, "must be less than %{number}"),
    "greater_than": (operator.gt, "must be greater than %{number}"),
    "less_than_or_equal_to": (operator.le, "must be less than or equal to %{number}"),
    "greater_than_or_equal_to": (operator.ge, "must be greater than or equal to %{number}"),
    "equal_to": (operator.eq, "must be equal to %{number}"),
    "not_equal_to": (operator.ne, "must be not equal to %{number}"),
}


def validate_change(
    changeset: Changeset,
    field: str,
    validator: Validator,
    *,
    metadata: Mapping[str, object] | None = None,
) -> Changeset:
    """Run ``validator`` on the change for ``field`` if there is a non-nil one."""

    changeset.schema.ensure_field(field)
    if metadata is not None:
        changeset = replace(
            changeset, validations=(*changeset.validations, (field, dict(metadata)))
        )
    value = changeset.changes.get(field)
    if value is None:
        return changeset
    errors = tuple(validator(field, value))
    if not errors:
        return changeset
    return replace(changeset, errors=(*changeset.errors, *errors))


def validate_required(
    changeset: Changeset,
    fields: str | Iterable[str],
    *,
    message: str = "can't be blank",
    trim: bool = True,
) -> Changeset:
    """Require ``fields`` to have a non-empty effective value.

    Blank strings count as empty when ``trim`` is set. Fields that already carry
    an error are not reported twice.
    """

    names = [fields] if isinstance(fields, str) else list(fields)
    for name in names:
        changeset.schema.ensure_field(name)
    errored = {error.field for error in changeset.errors}
    new_errors = [
        FieldError(name, message, {"validation": "required"})
        for name in names
        if name not in errored and _missing(changeset, name, trim=trim)
    ]
    return replace(
        changeset,
        required=changeset.required | set(names),
        errors=(*changeset.errors, *new_errors),
    )


def validate_format(
    changeset: Changeset,
    field: str,
    pattern: str | re.Pattern[str],
    *,
    message: str = "has invalid format",
) -> Changeset:
    regex = re.compile(pattern)

    def check(name: str, value: object) -> list[FieldError]:
        if isinstance(value, str) and regex.search(value):
            return []
        return [FieldError(name, message, {"validation": "format"})]

    return validate_change(
        changeset, field, check, metadata={"validation": "format", "format": regex.pattern}
    )


def validate_inclusion(
    changeset: Changeset,
    field: str,
    data: Collection[object],
    *,
    message: str = "is invalid",
) -> Changeset:
    def check(name: str, value: object) -> list[FieldError]:
        if value in data:
            return []
        return [FieldError(name, message, {"validation": "inclusion", "enum": list(data)})]

    return validate_change(
        changeset, field, check, metadata={"validation": "inclusion", "enum": list(data)}
    )


def validate_subset(
    changeset: Changeset,
    field: str,
    data: Collection[object],
    *,
    message: str = "has an invalid entry",
) -> Changeset:
    def check(name: str, value: object) -> list[FieldError]:
        if isinstance(value, Iterable) and all(item in data for item in value):
            return []
        return [FieldError(name, message, {"validation": "subset", "enum": list(data)})]

    return validate_change(
        changeset, field, check, metadata={"validation": "subset", "enum": list(data)}
    )


def validate_exclusion(
    changeset: Changeset,
    field: str,
    data: Collection[object],
    *,
    message: str = "is reserved",
) -> Changeset:
    def check(name: str, value: object) -> list[FieldError]:
        if value in data:
            return [FieldError(name, message, {"validation": "exclusion", "enum": list(data)})]
        return []

    return validate_change(
        changeset, field, check, metadata={"validation": "exclusion", "enum": list(data)}
    )


def validate_length(
    changeset: Changeset,
    field: str,
    *,
    exact: int | None = None,
    min: int | None = None,  # noqa: A002
    max: int | None = None,  # noqa: A002
    message: str | None = None,
) -> Changeset:
    """Validate the length of a string (characters) or a list (items)."""

    bounds = {"is": exact, "min": min, "max": max}
    metadata: dict[str, object] = {"validation": "length"}
    metadata.update({kind: count for kind, count in bounds.items() if count is not None})

    def check(name: str, value: object) -> list[FieldError]:
        if not isinstance(value, Sized):
            return []
        kind_name = "string" if isinstance(value, str) else "list"
        length = len(value)
        failure = _length_failure(length, exact=exact, min_length=min, max_length=max)
        if failure is None:
            return []
        kind, count = failure
        return [
            FieldError(
                name,
                message or _length_message(kind, kind_name),
                {"count": count, "validation": "length", "kind": kind, "type": kind_name},
            )
        ]

    return validate_change(changeset, field, check, metadata=metadata)


def validate_number(
    changeset: Changeset,
    field: str,
    *,
    message: str | None = None,
    **checks: object,
) -> Changeset:
    """Validate a number against ``less_than``, ``greater_than``, ``equal_to``... bounds."""

    for kind in checks:
        if kind not in _NUMBER_CHECKS:
            raise ValueError(f"unknown option {kind!r} given to validate_number")

    def check(name: str, value: object) -> list[FieldError]:
        for kind, target in checks.items():
            compare, default_message = _NUMBER_CHECKS[kind]
            if not compare(value, target):
                return [
                    FieldError(
                        name,
                        message or default_message,
                        {"validation": "number", "kind": kind, "number": target},
                    )
                ]
        return []

    return validate_change(changeset, field, check, metadata={"validation": "number", **checks})


def validate_confirmation(
    changeset: Changeset,
    field: str,
    *,
    required: bool = False,
    message: str = "does not match confirmation",
) -> Changeset:
    """Check ``<field>_confirmation`` in the params against the value of ``field``."""

    confirmation_field = f"{field}_confirmation"
    changeset = replace(
        changeset,
        validations=(*changeset.validations, (field, {"validation": "confirmation"})),
    )
    params = changeset.params or {}
    if field not in params:
        return changeset
    if confirmation_field not in params:
        if not required:
            return changeset
        error = FieldError(confirmation_field, "can't be blank", {"validation": "required"})
        return replace(changeset, errors=(*changeset.errors, error))
    if params[confirmation_field] == get_field(changeset, field):
        return changeset
    error = FieldError(confirmation_field, message, {"validation": "confirmation"})
    return replace(changeset, errors=(*changeset.errors, error))


def _missing(changeset: Changeset, name: str, *, trim: bool) -> bool:
    relation = changeset.schema.relation(name)
    if relation is not None:
        return bool(relation_is_empty(changeset, relation))
    value = get_field(changeset, name)
    if value is None:
        return True
    return trim and isinstance(value, str) and not value.strip()


def _length_failure(
    length: int,
    *,
    exact: int | None,
    min_length: int | None,
    max_length: int | None,
) -> tuple[str, int] | None:
    if exact is not None and length != exact:
        return "is", exact
    if min_length is not None and length < min_length:
        return "min", min_length
    if max_length is not None and length > max_length:
        return "max", max_length
    return None


def _length_message(kind: str, kind_name: str) -> str:
    unit = "character(s)" if kind_name == "string" else "item(s)"
    verb = "be" if kind_name == "string" else "have"
    match kind:
        case "is":
            return f"should {verb} %{{count}} {unit}"
        case "min":
            return f"should {verb} at least %{{count}} {unit}"
        case _:
            return f"should {verb} at most %{{count}} {unit}"
