"""Watch supervision.

At most one filesystem watcher is registered per process. Every detected
change re-runs the registered build action; a failing rebuild is reported
and the watcher keeps going.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable
from pathlib import Path

from stitch.core.interfaces import IWatcher, WatchAction, WatcherFactory
from stitch.core.logging import get_logger
from stitch.core.reporter import ErrorReporter

logger = get_logger(__name__)

IGNORED_DIRS = frozenset({"__pycache__", "node_modules", "components"})

Snapshot = dict[str, float]


class PollingWatcher:
    """Poll file mtimes under ``root`` and await the action on changes."""

    def __init__(
        self,
        root: Path,
        interval: float = 0.5,
        ignore: Iterable[Path] = (),
    ) -> None:
        self.root = root
        self.interval = interval
        self.ignore = tuple(p.resolve() for p in ignore)

    def _ignored(self, path: Path) -> bool:
        return any(path == ignored or ignored in path.parents for ignored in self.ignore)

    def snapshot(self) -> Snapshot:
        files: Snapshot = {}
        for dirpath, dirnames, filenames in os.walk(self.root):
            current = Path(dirpath)
            dirnames[:] = [
                d
                for d in dirnames
                if not d.startswith(".")
                and d not in IGNORED_DIRS
                and not self._ignored((current / d).resolve())
            ]
            for name in filenames:
                if name.startswith("."):
                    continue
                path = current / name
                try:
                    files[str(path)] = path.stat().st_mtime
                except OSError:
                    # Deleted between listing and stat
                    continue
        return files

    @staticmethod
    def changed(before: Snapshot, after: Snapshot) -> list[str]:
        paths = set(before) ^ set(after)
        paths.update(p for p in before.keys() & after.keys() if before[p] != after[p])
        return sorted(paths)

    async def watch(self, action: WatchAction) -> None:
        previous = await asyncio.to_thread(self.snapshot)
        while True:
            await asyncio.sleep(self.interval)
            current = await asyncio.to_thread(self.snapshot)
            changes = self.changed(previous, current)
            previous = current
            if not changes:
                continue
            logger.verbose(f"Changed: {', '.join(changes)}")
            # Edits saved while the action runs show up in the next poll.
            await action()


class WatchSupervisor:
    """Owns the process-wide "a watcher is active" state."""

    def __init__(
        self,
        reporter: ErrorReporter,
        watcher_factory: WatcherFactory | None = None,
        interval: float = 0.5,
        ignore: Iterable[Path] = (),
    ) -> None:
        self.reporter = reporter
        self.watcher_factory = watcher_factory or self._polling_watcher
        self.interval = interval
        self.ignore = tuple(ignore)
        self._active = False
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._active

    def _polling_watcher(self, root: Path) -> IWatcher:
        return PollingWatcher(root, interval=self.interval, ignore=self.ignore)

    def watch(self, root: Path, action: WatchAction) -> bool:
        """Start watching ``root``; no-op when a watcher is already active.

        Must be called from inside the running event loop.

        Returns:
            True if a watcher was registered by this call
        """
        if self._active:
            return False
        self._active = True

        async def _guarded() -> None:
            try:
                await action()
            except Exception as e:
                self.reporter.report(e)

        watcher = self.watcher_factory(root)
        self._task = asyncio.get_running_loop().create_task(watcher.watch(_guarded))
        logger.verbose(f"Watching {root}")
        return True

    async def wait(self) -> None:
        """Block while the watcher runs (forever, unless it is cancelled)."""
        if self._task is not None:
            await self._task

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
