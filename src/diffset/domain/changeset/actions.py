"""Resolved outcome of one changeset."""

from __future__ import annotations

from enum import StrEnum


class Action(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE = "replace"
    IGNORE = "ignore"


REMOVAL_ACTIONS = frozenset({Action.DELETE, Action.REPLACE})
