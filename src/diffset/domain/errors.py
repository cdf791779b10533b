"""Caller-misuse errors raised by the changeset engine.

Validation failures never raise; they are recorded on the changeset. The
exceptions below signal that the caller asked for something the engine cannot
answer without losing or inventing data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diffset.domain.model import Record


class ChangesetError(ValueError):
    """Base class for errors caused by invalid use of the changeset API."""


class UnknownFieldError(ChangesetError):
    """Raised when a field is not declared on the schema."""

    def __init__(self, schema_name: str, field: str) -> None:
        super().__init__(f"unknown field `{field}` for schema `{schema_name}`")
        self.schema_name = schema_name
        self.field = field


class RelationNotLoadedError(ChangesetError):
    """Raised when diffing a relation whose current value was never loaded."""

    def __init__(self, schema_name: str, field: str) -> None:
        super().__init__(
            f"attempting to cast or change relation `{field}` of `{schema_name}` "
            "that was not loaded. Please load the relation before changing it"
        )
        self.schema_name = schema_name
        self.field = field


class ReplacementError(ChangesetError):
    """Raised when a related item would be replaced under the ``raise`` policy."""

    def __init__(self, schema_name: str, field: str, record: Record, *, reason: str) -> None:
        super().__init__(
            f"you are attempting to change relation `{field}` of `{schema_name}` but "
            f"{reason}: {record!r}. Pick a different on_replace policy for the relation "
            "or pass every existing item back in the proposed value"
        )
        self.schema_name = schema_name
        self.field = field
        self.record = record


class MissingIdentityError(ChangesetError):
    """Raised when an update or delete is requested for a record without identity."""

    def __init__(self, record: Record, action: str) -> None:
        super().__init__(
            f"cannot {action} `{record.schema.name}` record without a value for "
            f"its identity field(s) {', '.join(record.schema.primary_key)}"
        )
        self.record = record


class InvalidActionError(ChangesetError):
    """Raised when a changeset action contradicts the persistence state of its data."""


class DuplicateIdentityError(ChangesetError):
    """Raised when a proposed list carries the same identity more than once."""

    def __init__(self, field: str, identity: tuple[object, ...]) -> None:
        super().__init__(f"duplicate identity {identity!r} in proposed value for `{field}`")
        self.field = field
        self.identity = identity


class ChangesetMismatchError(ChangesetError):
    """Raised when a changeset or record does not belong to the expected schema."""


class ProposedShapeError(ChangesetError):
    """Raised when a proposed relation value has a shape the relation cannot accept."""
