"""Engine-wide defaults for casting and relation declarations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from diffset.domain.model.enums import OnReplace

from .env import optional_env_var, split_env_list
from .errors import ConfigurationError

EMPTY_VALUES_ENV: Final[str] = "DIFFSET_EMPTY_VALUES"
DEFAULT_ON_REPLACE_ENV: Final[str] = "DIFFSET_DEFAULT_ON_REPLACE"
DEFAULT_EMPTY_VALUES: Final[tuple[str, ...]] = ("",)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Defaults applied when callers do not pass explicit options.

    ``empty_values`` are raw parameter values that casting turns into ``None``.
    ``default_on_replace`` is used by the declaration helpers and schema adapters
    for relations that do not declare their own policy.
    """

    empty_values: tuple[str, ...] = DEFAULT_EMPTY_VALUES
    default_on_replace: OnReplace = OnReplace.RAISE


def get_engine_config() -> EngineConfig:
    empty_values = DEFAULT_EMPTY_VALUES
    raw_empty_values = optional_env_var(EMPTY_VALUES_ENV)
    if raw_empty_values is not None:
        empty_values = split_env_list(raw_empty_values)

    default_on_replace = OnReplace.RAISE
    raw_on_replace = optional_env_var(DEFAULT_ON_REPLACE_ENV)
    if raw_on_replace is not None:
        try:
            default_on_replace = OnReplace(raw_on_replace.strip().lower())
        except ValueError as exc:
            choices = ", ".join(policy.value for policy in OnReplace)
            raise ConfigurationError(
                f"Invalid {DEFAULT_ON_REPLACE_ENV}={raw_on_replace!r}; expected one of: {choices}"
            ) from exc

    return EngineConfig(empty_values=empty_values, default_on_replace=default_on_replace)
