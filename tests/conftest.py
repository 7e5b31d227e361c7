"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
import io
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any

import pytest

# Add repo root and src to path (for 'plugins.*' and 'stitch.*' imports)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))
sys.path.insert(0, str(repo_root / "src"))

from stitch.core.config import RunConfig  # noqa: E402
from stitch.core.context import BuildContext  # noqa: E402
from stitch.core.interfaces import BuildResult  # noqa: E402
from stitch.core.logging import BuildLog, VerbosityLevel, set_colors, set_verbosity  # noqa: E402
from stitch.core.reporter import ErrorReporter  # noqa: E402
from stitch.core.watch import WatchSupervisor  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_logging():
    """Global logging state must not leak between tests."""
    set_colors(True)
    set_verbosity(VerbosityLevel.NORMAL)
    yield
    set_verbosity(VerbosityLevel.NORMAL)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """Keep the user's config, tokens and STITCH_* variables out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("STITCH_") or key in ("GH_TOKEN", "GITHUB_TOKEN"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


class FakeEngine:
    """Engine double that records every call.

    Behaviour per entry name comes from the factory: ``error`` to raise,
    ``delay`` to sleep before finishing, ``result`` to return.
    """

    def __init__(self, root: Path, factory: FakeEngineFactory) -> None:
        self.root = root
        self.factory = factory
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.listeners: dict[str, list[Any]] = defaultdict(list)
        self.plugins: list[Any] = []
        self.entry_ref: Any = None
        self.entry_type: str | None = None
        self.finished = False

    def _record(self, name: str, *args: Any) -> FakeEngine:
        self.calls.append((name, args))
        return self

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for call, args in self.calls if call == name]

    def entry(self, ref, type=None):
        self.entry_ref = ref
        self.entry_type = type
        return self._record("entry", ref, type)

    def development(self, enabled=True):
        return self._record("development", enabled)

    def source_map(self, mode):
        return self._record("source_map", mode)

    def copy(self, enabled=True):
        return self._record("copy", enabled)

    def token(self, token):
        return self._record("token", token)

    def cache(self, enabled=True):
        return self._record("cache", enabled)

    def standalone(self, name):
        return self._record("standalone", name)

    def global_name(self, name):
        return self._record("global_name", name)

    def build_to(self, directory):
        return self._record("build_to", directory)

    def use(self, plugin):
        self.plugins.append(plugin)
        return self._record("use", plugin)

    def on(self, event, listener):
        self.listeners[event].append(listener)
        return self._record("on", event)

    def emit(self, event: str, payload: Any) -> None:
        for listener in self.listeners.get(event, []):
            listener(payload)

    @property
    def name(self) -> str:
        if isinstance(self.entry_ref, Path):
            return self.entry_ref.name
        return f"source.{self.entry_type}"

    async def _finish(self) -> BuildResult:
        behaviour = self.factory.behaviour.get(self.name, {})
        self.emit("running", self.name)
        await asyncio.sleep(behaviour.get("delay", 0))
        if "error" in behaviour:
            raise behaviour["error"]
        self.emit("run", self.name)
        self.finished = True
        return behaviour.get("result", BuildResult(code=f"// {self.name}\n"))

    async def run(self) -> BuildResult:
        self._record("run")
        return await self._finish()

    async def write(self) -> BuildResult:
        self._record("write")
        result = await self._finish()
        self.emit("write", f"build/{self.name}")
        return result


class FakeEngineFactory:
    def __init__(self) -> None:
        self.engines: list[FakeEngine] = []
        self.behaviour: dict[str, dict[str, Any]] = {}

    def __call__(self, root: Path) -> FakeEngine:
        engine = FakeEngine(root, self)
        self.engines.append(engine)
        return engine


@pytest.fixture
def fake_engines() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture
def make_ctx(tmp_path, fake_engines):
    """Build a BuildContext around a RunConfig rooted at tmp_path."""

    def _make(stdin: str = "", watcher_factory=None, **overrides: Any) -> BuildContext:
        overrides.setdefault("root", tmp_path)
        config = RunConfig(**overrides)
        log = BuildLog(quiet=config.quiet, stream=io.StringIO())
        reporter = ErrorReporter(log, cwd=tmp_path)
        return BuildContext(
            config=config,
            log=log,
            reporter=reporter,
            supervisor=WatchSupervisor(reporter, watcher_factory),
            engine_factory=fake_engines,
            stdin=io.StringIO(stdin),
            stdout=io.StringIO(),
            cwd=tmp_path,
        )

    return _make


@pytest.fixture
def project(tmp_path) -> Path:
    """A project root with a marker file and a couple of entries."""
    (tmp_path / "stitch.yaml").write_text("{}\n")
    (tmp_path / "index.js").write_text("var answer = 42;\nmodule.exports = answer;\n")
    (tmp_path / "index.css").write_text("body {\n  color: red;\n}\n")
    return tmp_path
