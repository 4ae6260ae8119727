"""Verbosity-gated trace channel for the engine.

The policy ``debug`` level selects how much detail is emitted:

* ``> 0`` -- files skipped because they are excluded
* ``> 1`` -- layer resolution and every import found
* ``> 2`` -- every individual pattern test
* ``> 3`` -- glob-level detail
* ``> 4`` -- full node dumps
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import logging

SKIPS = 1
RESOLUTION = 2
PATTERNS = 3
GLOBS = 4
NODES = 5


def trace(logger: logging.Logger, debug: int, level: int, msg: str, *args: object) -> None:
    """Emit *msg* on *logger* at DEBUG when *debug* reaches *level*."""
    if debug >= level:
        logger.debug(msg, *args)
