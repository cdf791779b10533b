"""Environment variable loaders for configuration."""

from __future__ import annotations

import os


def optional_env_var(name: str) -> str | None:
    """Return an environment variable, treating unset and blank values alike."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value


def split_env_list(value: str) -> tuple[str, ...]:
    """Split a comma separated environment value, keeping empty entries once.

    ``"-,"`` therefore yields ``("-", "")`` which lets users configure the empty
    string itself as a member of the list.
    """

    return tuple(dict.fromkeys(item.strip() for item in value.split(",")))
