"""Leveled debug sink handed to the core instead of a global flag."""

from __future__ import annotations

import logging
import sys

logger = logging.getLogger("rcwalk")


class DebugLog:
    """Forward messages to a logger when their level is within *verbosity*.

    Levels start at 1; a message at level 2 only shows up when the
    configured verbosity is 2 or more. Verbosity 0 silences everything.
    """

    def __init__(self, verbosity: int = 0, log: logging.Logger | None = None) -> None:
        self.verbosity = verbosity
        self._log = log if log is not None else logger

    def enabled(self, level: int) -> bool:
        return 1 <= level <= self.verbosity

    def emit(self, level: int, message: str, *args: object) -> None:
        if self.enabled(level):
            self._log.debug(message, *args)


def configure(verbosity: int = 0) -> None:
    """Attach a stderr handler to the ``rcwalk`` logger for CLI use."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbosity > 0 else logging.WARNING)
