"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class InvalidRelationError(ConfigurationError):
    """Raised when a relation is declared with an unsupported option combination."""
