"""Centralized logging for stitch.

Two loggers live here:

- ``get_logger(name)``: internal diagnostics with 4 verbosity levels
  (QUIET, NORMAL, VERBOSE, DEBUG), used by the kernel and the engine.
- ``BuildLog``: the leveled build log that renders engine events
  (``building``, ``built``, ``wrote`` ...) for the user.

Everything goes to stderr; stdout is reserved for build artifacts in the
stdout run modes.

Usage:
    from stitch.core.logging import get_logger, set_verbosity

    logger = get_logger(__name__)
    set_verbosity(VerbosityLevel.VERBOSE)
    logger.verbose("Resolved root")
"""

from __future__ import annotations

import sys
from enum import IntEnum
from typing import TextIO

RESET = "\033[0m"


class VerbosityLevel(IntEnum):
    """Verbosity levels for stitch."""

    QUIET = 0  # Warnings + errors
    NORMAL = 1  # Info + warnings + errors
    VERBOSE = 2  # Detailed info
    DEBUG = 3  # Everything


_VERBOSITY: VerbosityLevel = VerbosityLevel.NORMAL

_USE_COLORS: bool = True


def set_verbosity(level: int | VerbosityLevel) -> None:
    """Set global verbosity level.

    Args:
        level: Verbosity level (0-3 or VerbosityLevel enum)
    """
    global _VERBOSITY
    _VERBOSITY = VerbosityLevel(level)


def get_verbosity() -> VerbosityLevel:
    return _VERBOSITY


def set_colors(enabled: bool) -> None:
    """Enable or disable colored output."""
    global _USE_COLORS
    _USE_COLORS = enabled


def _wants_color(stream: TextIO) -> bool:
    if not _USE_COLORS:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class StitchLogger:
    """Internal logger with verbosity support."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "VERBOSE": "\033[34m",  # Blue
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
    }

    def __init__(self, name: str):
        self.name = name

    def _log(self, level: VerbosityLevel, level_name: str, message: str) -> None:
        if level > _VERBOSITY:
            return

        plain = f"[{level_name.lower()}] {message}"
        stream = sys.stderr
        if _wants_color(stream):
            color = self.COLORS.get(level_name, "")
            print(f"{color}[{level_name.lower()}]{RESET} {message}", file=stream)
        else:
            print(plain, file=stream)

    def debug(self, message: str) -> None:
        self._log(VerbosityLevel.DEBUG, "DEBUG", message)

    def verbose(self, message: str) -> None:
        self._log(VerbosityLevel.VERBOSE, "VERBOSE", message)

    def info(self, message: str) -> None:
        self._log(VerbosityLevel.NORMAL, "INFO", message)

    def warning(self, message: str) -> None:
        self._log(VerbosityLevel.QUIET, "WARNING", message)

    def error(self, message: str) -> None:
        """Log error message (always shown)."""
        self._log(VerbosityLevel.QUIET, "ERROR", message)


_LOGGERS: dict[str, StitchLogger] = {}


def get_logger(name: str = __name__) -> StitchLogger:
    """Get logger instance for module.

    Args:
        name: Logger name (usually __name__)
    """
    if name not in _LOGGERS:
        _LOGGERS[name] = StitchLogger(name)
    return _LOGGERS[name]


class BuildLog:
    """Leveled build log.

    Each level has its own color. Lines look like::

           building : index.js
              wrote : build/index.js

    ``quiet`` suppresses every level except ``error``, and ``end()``.
    """

    LEVELS = {
        "wrote": "\033[36m",  # Cyan
        "building": "\033[34m",  # Blue
        "built": "\033[32m",  # Green
        "installing": "\033[34m",
        "installed": "\033[32m",
        "finding": "\033[90m",  # Gray
        "found": "\033[90m",
        "using": "\033[35m",  # Magenta
        "error": "\033[31m",  # Red
    }

    WIDTH = max(len(level) for level in LEVELS) + 2

    def __init__(self, *, quiet: bool = False, stream: TextIO | None = None) -> None:
        self.quiet = quiet
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def log(self, level: str, message: str) -> None:
        """Write one line at ``level``.

        Raises:
            ValueError: If ``level`` is not a known build log level
        """
        if level not in self.LEVELS:
            raise ValueError(f"Unknown build log level: {level!r}")
        if self.quiet and level != "error":
            return

        plain = f"{level.rjust(self.WIDTH)} : {message}"
        stream = self.stream
        if _wants_color(stream):
            color = self.LEVELS[level]
            stream.write(f"{color}{level.rjust(self.WIDTH)}{RESET} : {message}\n")
        else:
            stream.write(plain + "\n")
        stream.flush()

    def error(self, message: str) -> None:
        self.log("error", message)

    def end(self) -> None:
        """Finish a run with a blank line (skipped when quiet)."""
        if self.quiet:
            return
        self.stream.write("\n")
        self.stream.flush()
