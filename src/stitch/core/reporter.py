"""Error reporting.

The reporter turns any failure into one error line (or a traceback) on the
build log and hands back the exit status. It never exits the process; the
CLI owns that decision.
"""

from __future__ import annotations

import os
import traceback
from pathlib import Path

from stitch.core.errors import BuildError, BuildSyntaxError, StitchError
from stitch.core.logging import BuildLog

EXIT_FAILURE = 1


def _relative(path: str, cwd: Path) -> str:
    try:
        return os.path.relpath(path, cwd)
    except ValueError:
        # Different drive on Windows
        return path


class ErrorReporter:
    def __init__(self, log: BuildLog, cwd: Path | None = None) -> None:
        self.log = log
        self.cwd = cwd

    def format(self, error: BaseException | str) -> str:
        if isinstance(error, str):
            error = BuildError(error)

        if isinstance(error, BuildSyntaxError) and error.filename:
            where = _relative(error.filename, self.cwd or Path.cwd())
            return f"Syntax error: {error.message} in: {where}"

        if isinstance(error, StitchError) and not isinstance(error, BuildError):
            return str(error)

        return "".join(traceback.format_exception(type(error), error, error.__traceback__)).rstrip()

    def report(self, error: BaseException | str) -> int:
        """Log ``error`` and return the exit status for it."""
        self.log.error(self.format(error))
        self.log.end()
        return EXIT_FAILURE
