"""Shared state handed to the run coordinators."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from stitch.core.config import RunConfig
from stitch.core.interfaces import EngineFactory, Plugin
from stitch.core.logging import BuildLog
from stitch.core.reporter import ErrorReporter
from stitch.core.watch import WatchSupervisor


@dataclass(frozen=True)
class VirtualEntry:
    """Entry built from in-memory source (piped stdin)."""

    source: str
    type: str


@dataclass
class BuildContext:
    config: RunConfig
    log: BuildLog
    reporter: ErrorReporter
    supervisor: WatchSupervisor
    engine_factory: EngineFactory
    plugins: list[Plugin] = field(default_factory=list)
    token: str | None = None
    stdin: TextIO | None = None
    stdout: TextIO | None = None
    cwd: Path = field(default_factory=Path.cwd)

    @property
    def input(self) -> TextIO:
        return self.stdin if self.stdin is not None else sys.stdin

    @property
    def output(self) -> TextIO:
        return self.stdout if self.stdout is not None else sys.stdout
