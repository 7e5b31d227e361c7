"""Tests for the watch supervisor and the polling watcher."""

from __future__ import annotations

import asyncio
import io
import os

import pytest

from stitch.core.logging import BuildLog
from stitch.core.reporter import ErrorReporter
from stitch.core.watch import PollingWatcher, WatchSupervisor


class _OneShotWatcher:
    """Fires the action ``times`` times, then stops."""

    def __init__(self, times: int = 1) -> None:
        self.times = times
        self.fired = 0

    async def watch(self, action) -> None:
        for _ in range(self.times):
            self.fired += 1
            await action()


def _supervisor(factory) -> tuple[WatchSupervisor, io.StringIO]:
    stream = io.StringIO()
    return WatchSupervisor(ErrorReporter(BuildLog(stream=stream)), factory), stream


@pytest.mark.asyncio
async def test_second_registration_is_a_noop(tmp_path):
    created = []

    def factory(root):
        created.append(root)
        return _OneShotWatcher(times=0)

    supervisor, _stream = _supervisor(factory)

    async def action():
        return None

    assert supervisor.active is False
    assert supervisor.watch(tmp_path, action) is True
    assert supervisor.watch(tmp_path, action) is False
    await supervisor.wait()

    assert created == [tmp_path]
    assert supervisor.active is True


@pytest.mark.asyncio
async def test_failing_action_does_not_stop_watching(tmp_path):
    watcher = _OneShotWatcher(times=3)
    supervisor, stream = _supervisor(lambda root: watcher)
    runs = []

    async def action():
        runs.append(len(runs))
        if len(runs) == 2:
            raise RuntimeError("broken edit")

    supervisor.watch(tmp_path, action)
    await supervisor.wait()

    assert runs == [0, 1, 2]
    assert "broken edit" in stream.getvalue()


@pytest.mark.asyncio
async def test_stop_cancels_watcher(tmp_path):
    supervisor, _stream = _supervisor(lambda root: PollingWatcher(root, interval=0.01))

    async def action():
        return None

    supervisor.watch(tmp_path, action)
    supervisor.stop()
    with pytest.raises(asyncio.CancelledError):
        await supervisor.wait()


class TestPollingWatcher:
    def test_snapshot_ignores_hidden_output_and_vendor(self, tmp_path):
        (tmp_path / "index.js").write_text("a")
        for name in (".git", "node_modules", "build"):
            (tmp_path / name).mkdir()
            (tmp_path / name / "x.js").write_text("x")
        (tmp_path / ".hidden.js").write_text("h")

        snapshot = PollingWatcher(tmp_path, ignore=[tmp_path / "build"]).snapshot()

        assert list(snapshot) == [str(tmp_path / "index.js")]

    def test_changed(self):
        before = {"a": 1.0, "b": 1.0, "c": 1.0}
        after = {"a": 1.0, "b": 2.0, "d": 1.0}
        assert PollingWatcher.changed(before, after) == ["b", "c", "d"]

    @pytest.mark.asyncio
    async def test_detects_modification(self, tmp_path):
        target = tmp_path / "index.js"
        target.write_text("a")
        watcher = PollingWatcher(tmp_path, interval=0.01)
        fired = asyncio.Event()

        async def action():
            fired.set()

        task = asyncio.create_task(watcher.watch(action))
        await asyncio.sleep(0.05)
        stat = target.stat()
        os.utime(target, (stat.st_atime, stat.st_mtime + 5))
        await asyncio.wait_for(fired.wait(), timeout=2)
        task.cancel()

    @pytest.mark.asyncio
    async def test_edit_during_action_triggers_another_run(self, tmp_path):
        target = tmp_path / "index.js"
        target.write_text("a")
        watcher = PollingWatcher(tmp_path, interval=0.01)
        runs = []
        done = asyncio.Event()

        def touch(text: str, offset: float) -> None:
            target.write_text(text)
            stat = target.stat()
            os.utime(target, (stat.st_atime, stat.st_mtime + offset))

        async def action():
            runs.append(target.read_text())
            if len(runs) == 1:
                # Saved while the first rebuild is still running.
                touch("ccc", 10)
            else:
                done.set()

        task = asyncio.create_task(watcher.watch(action))
        await asyncio.sleep(0.05)
        touch("bb", 5)
        await asyncio.wait_for(done.wait(), timeout=2)
        task.cancel()

        assert runs == ["bb", "ccc"]
