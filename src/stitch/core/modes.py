"""Run mode selection.

Exactly one mode is chosen per invocation, by a fixed precedence ladder.
"""

from __future__ import annotations

from enum import Enum

from stitch.core.config import RunConfig
from stitch.core.errors import ConfigError


class RunMode(str, Enum):
    STDIN = "stdin"  # stdin -> stdout
    STDOUT = "stdout"  # one entry -> stdout
    BATCH = "batch"  # N entries -> files
    HELP = "help"


def resolve_run_mode(config: RunConfig, stdin_is_tty: bool) -> RunMode:
    """Pick the run mode; first match wins.

    Raises:
        ConfigError: On conflicting flags
    """
    if config.quiet and config.verbose:
        raise ConfigError(
            "cannot use --quiet and --verbose together",
            "Pick one of -q/--quiet or -v/--verbose",
        )

    if config.stdout and len(config.entries) > 1:
        raise ConfigError(
            "cannot use --stdout with multiple entries",
            "Pass a single entry with -S/--stdout, or drop the flag to write files",
        )

    if config.stdout and len(config.entries) == 1:
        return RunMode.STDOUT

    if config.entries:
        return RunMode.BATCH

    if not stdin_is_tty:
        return RunMode.STDIN

    return RunMode.HELP
