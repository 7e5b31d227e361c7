"""Run coordinators.

One coordinator runs per invocation, selected by the run mode:

- ``run_stdin``: piped source -> stdout
- ``run_stdout``: one entry -> stdout, optionally watched
- ``run_batch``: N entries -> files, concurrently, optionally watched

Every coordinator moves through ``IDLE -> BUILDING -> SUCCEEDED|FAILED``;
a successful watched build moves to ``WATCHING`` and each change goes back
to ``BUILDING``. Coordinators raise on failure; the first build's failure
ends the process (via the CLI), a watch-triggered failure is reported by the
supervisor and the watcher keeps running.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator

from stitch.core.config import for_stream
from stitch.core.context import BuildContext, VirtualEntry
from stitch.core.detection import detect_type, type_from_path
from stitch.core.errors import TypeDetectionError
from stitch.core.interfaces import BuildResult
from stitch.core.logging import get_logger
from stitch.core.modes import RunMode
from stitch.core.session import create_session
from stitch.core.sourcemap import to_comment

logger = get_logger(__name__)


class BuildState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    WATCHING = "watching"


class BuildTracker:
    """Current state of the coordinator, for diagnostics and tests."""

    def __init__(self) -> None:
        self.state = BuildState.IDLE
        self.builds = 0

    def set(self, state: BuildState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    @asynccontextmanager
    async def building(self) -> AsyncIterator[None]:
        self.builds += 1
        self.set(BuildState.BUILDING)
        try:
            yield
        except BaseException:
            self.set(BuildState.FAILED)
            raise
        self.set(BuildState.SUCCEEDED)


def _emit(ctx: BuildContext, result: BuildResult, type: str | None) -> None:
    out = ctx.output
    if result.code:
        out.write(result.code)
    if result.map:
        out.write("\n\n" + to_comment(result.map, type))
    out.flush()


def _watch(ctx: BuildContext, tracker: BuildTracker, action: Callable[[], Awaitable[None]]) -> None:
    ctx.supervisor.watch(ctx.config.root, action)
    tracker.set(BuildState.WATCHING)


async def run_stdin(ctx: BuildContext, tracker: BuildTracker | None = None) -> None:
    """Build piped source and write it to stdout.

    Raises:
        TypeDetectionError: If no type was declared and none can be sniffed
    """
    tracker = tracker or BuildTracker()
    config = ctx.config

    # Blocks until stdin is closed.
    source = ctx.input.read()
    type = config.type or detect_type(source)
    if not type:
        raise TypeDetectionError()

    async with tracker.building():
        engine = create_session(
            VirtualEntry(source, type),
            ctx,
            source_map=for_stream(config.source_map_mode),
            label_type=type,
        )
        result = await engine.run()
        _emit(ctx, result, type)


async def run_stdout(ctx: BuildContext, tracker: BuildTracker | None = None) -> None:
    """Build the single entry and write it to stdout; re-run on changes with --watch."""
    tracker = tracker or BuildTracker()
    config = ctx.config
    entry = (ctx.cwd / config.entries[0]).resolve()
    type = type_from_path(entry)

    async def build() -> None:
        async with tracker.building():
            engine = create_session(entry, ctx, source_map=for_stream(config.source_map_mode))
            result = await engine.run()
            ctx.log.end()
            _emit(ctx, result, type)

        if config.watch:
            _watch(ctx, tracker, build)

    await build()


async def run_batch(ctx: BuildContext, tracker: BuildTracker | None = None) -> None:
    """Write every entry concurrently; the first failure fails the build."""
    tracker = tracker or BuildTracker()
    config = ctx.config

    async def build() -> None:
        async with tracker.building():
            engines = [create_session(entry, ctx) for entry in config.entries]
            # No return_exceptions: the first error propagates, siblings keep
            # running and their results are dropped.
            await asyncio.gather(*(engine.write() for engine in engines))
            ctx.log.end()

        if config.watch:
            _watch(ctx, tracker, build)

    await build()


COORDINATORS = {
    RunMode.STDIN: run_stdin,
    RunMode.STDOUT: run_stdout,
    RunMode.BATCH: run_batch,
}


async def run(mode: RunMode, ctx: BuildContext, tracker: BuildTracker | None = None) -> None:
    try:
        coordinator = COORDINATORS[mode]
    except KeyError:
        raise ValueError(f"No coordinator for run mode {mode.value!r}") from None
    await coordinator(ctx, tracker)
