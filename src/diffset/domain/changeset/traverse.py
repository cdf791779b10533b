"""Collect errors and validations of a changeset tree into nested maps."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from .changeset import relation_changesets

if TYPE_CHECKING:
    from .changeset import Changeset

type ErrorFormatter = Callable[[str, Mapping[str, object]], object]
type ValidationFormatter = Callable[[Mapping[str, object]], object]

_PLACEHOLDER = re.compile(r"%\{(\w+)\}")


def interpolate(message: str, metadata: Mapping[str, object]) -> str:
    """Fill ``%{key}`` placeholders in ``message`` from ``metadata``.

    Unknown keys are left as they are.
    """

    def substitute(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in metadata:
            return str(metadata[key])
        return match.group(0)

    return _PLACEHOLDER.sub(substitute, message)


def traverse_errors(
    changeset: Changeset,
    formatter: ErrorFormatter | None = None,
) -> dict[str, object]:
    """Return ``{field: [formatted errors]}`` including nested relation errors.

    One-relations nest a map, many-relations nest a list aligned with the
    change list. Nested keys only appear when some nested item has errors.
    """

    fmt = formatter or interpolate
    collected: dict[str, list[object]] = {}
    for error in changeset.errors:
        collected.setdefault(error.field, []).append(fmt(error.message, error.metadata))
    result: dict[str, object] = dict(collected)
    for name, nested in _traverse_nested(changeset, lambda child: traverse_errors(child, fmt)):
        result[name] = nested
    return result


def traverse_validations(
    changeset: Changeset,
    formatter: ValidationFormatter | None = None,
) -> dict[str, object]:
    """Return ``{field: [validation metadata]}`` including nested relations."""

    fmt: ValidationFormatter = formatter or dict
    collected: dict[str, list[object]] = {}
    for field, metadata in changeset.validations:
        collected.setdefault(field, []).append(fmt(metadata))
    result: dict[str, object] = dict(collected)
    for name, nested in _traverse_nested(
        changeset, lambda child: traverse_validations(child, fmt)
    ):
        result[name] = nested
    return result


def _traverse_nested(
    changeset: Changeset,
    collect: Callable[[Changeset], dict[str, object]],
) -> list[tuple[str, object]]:
    found: list[tuple[str, object]] = []
    for name, relation in changeset.schema.relations.items():
        if name not in changeset.changes:
            continue
        children = relation_changesets(relation, changeset.changes[name])
        collected = [collect(child) for child in children]
        if not any(collected):
            continue
        found.append((name, collected if relation.is_many else collected[0]))
    return found
