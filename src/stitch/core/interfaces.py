"""Interfaces of the external collaborators the kernel drives.

The kernel never builds anything itself: it configures engine sessions,
attaches plugins and listeners, and awaits ``run()``/``write()``. Any object
satisfying these protocols can be plugged in.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from stitch.core.config import SourceMapMode


@dataclass
class BuildResult:
    """Output of one engine run.

    ``map`` is a version-3 source map dict, or None when maps are disabled.
    """

    code: str = ""
    map: dict[str, Any] | None = None


@runtime_checkable
class INamed(Protocol):
    """Event payload with a slug-like identity (files, dependencies)."""

    def slug(self) -> str: ...


class Plugin(Protocol):
    """Opaque transform attached to an engine.

    Called once per built file, in attachment order. May be a coroutine
    function.
    """

    def __call__(self, file: Any, engine: Any) -> Any: ...


class IEngine(Protocol):
    """One configured engine session bound to a single entry.

    Setters return the session so calls can be chained.
    """

    def entry(self, ref: str | Path, type: str | None = None) -> IEngine:
        """Set the entry: a file path, or source text when ``type`` is given."""
        ...

    def development(self, enabled: bool = True) -> IEngine: ...

    def source_map(self, mode: SourceMapMode) -> IEngine: ...

    def copy(self, enabled: bool = True) -> IEngine: ...

    def token(self, token: str) -> IEngine: ...

    def cache(self, enabled: bool = True) -> IEngine: ...

    def standalone(self, name: str) -> IEngine: ...

    def global_name(self, name: str) -> IEngine: ...

    def build_to(self, directory: str | Path) -> IEngine: ...

    def use(self, plugin: Plugin) -> IEngine: ...

    def on(self, event: str, listener: Callable[[Any], None]) -> IEngine: ...

    async def run(self) -> BuildResult:
        """Build the entry in memory.

        Raises:
            BuildError: If the build fails
        """
        ...

    async def write(self) -> BuildResult:
        """Build the entry and write the artifact(s) under the output directory.

        Raises:
            BuildError: If the build or the write fails
        """
        ...


EngineFactory = Callable[[Path], IEngine]

WatchAction = Callable[[], Awaitable[None]]


class IWatcher(Protocol):
    """Filesystem watcher rooted at one directory."""

    async def watch(self, action: WatchAction) -> None:
        """Await ``action`` on every detected change, until cancelled."""
        ...


WatcherFactory = Callable[[Path], IWatcher]
