"""Logging configuration for planz."""

import os
import sys

from loguru import logger

_QUIET_FORMAT = "{level.icon} {message}"
_VERBOSE_FORMAT = "{time:HH:mm:ss.SSS} {level: <7} {name}:{function} - {message}"


def configure_logging(*, verbose: bool = False) -> None:
    """Configure loguru for command-line use.

    Normal runs only surface warnings (skipped identifiers, skipped refine paths)
    so command output stays clean; ``verbose`` switches to debug output with
    source locations. ``PLANZ_LOG_LEVEL`` overrides the level either way.
    """
    logger.remove()
    level = os.environ.get("PLANZ_LOG_LEVEL") or ("DEBUG" if verbose else "WARNING")
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_VERBOSE_FORMAT if verbose else _QUIET_FORMAT,
    )
