"""Shared logging helpers for diffset."""

from __future__ import annotations

import logging

ENGINE_LOGGER = "diffset"


def configure_logging(
    *,
    level: int = logging.INFO,
    engine_level: int | None = None,
    force: bool = False,
) -> None:
    """Initialise the root logger once with sensible defaults.

    The engine only emits DEBUG records (skipped relations, replacements, applied
    defaults). ``engine_level`` sets the ``diffset`` logger on its own so those
    records can be turned on without flooding the root logger. Pass ``force=True``
    to reconfigure an already configured root logger.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    if engine_level is not None:
        logging.getLogger(ENGINE_LOGGER).setLevel(engine_level)
