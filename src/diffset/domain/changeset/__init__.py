"""Changesets, validations and the nested relation diff engine."""

from __future__ import annotations

from .actions import REMOVAL_ACTIONS, Action
from .casting import cast, cast_value
from .changeset import (
    Changeset,
    FieldError,
    add_error,
    apply_changes,
    delete_change,
    fetch_change,
    fetch_field,
    force_change,
    get_change,
    get_field,
    merge,
    put_new_action,
)
from .diff import ItemStrategy, RelationDiff, diff_relation
from .relations import (
    cast_all,
    cast_relation,
    change,
    change_record,
    put_change,
    put_relation,
    update_change,
)
from .required import relation_is_empty, validate_required_relation
from .traverse import interpolate, traverse_errors, traverse_validations
from .validations import (
    validate_change,
    validate_confirmation,
    validate_exclusion,
    validate_format,
    validate_inclusion,
    validate_length,
    validate_number,
    validate_required,
    validate_subset,
)

__all__ = [
    "REMOVAL_ACTIONS",
    "Action",
    "Changeset",
    "FieldError",
    "ItemStrategy",
    "RelationDiff",
    "add_error",
    "apply_changes",
    "cast",
    "cast_all",
    "cast_relation",
    "cast_value",
    "change",
    "change_record",
    "delete_change",
    "diff_relation",
    "fetch_change",
    "fetch_field",
    "force_change",
    "get_change",
    "get_field",
    "interpolate",
    "merge",
    "put_change",
    "put_new_action",
    "put_relation",
    "relation_is_empty",
    "traverse_errors",
    "traverse_validations",
    "update_change",
    "validate_change",
    "validate_confirmation",
    "validate_exclusion",
    "validate_format",
    "validate_inclusion",
    "validate_length",
    "validate_number",
    "validate_required",
    "validate_required_relation",
    "validate_subset",
]
