"""Reference engine.

A deliberately small engine that satisfies the session interface so the CLI
works out of the box. It does no dependency resolution: the entry is read,
syntax-checked, passed through the attached plugins in order, optionally
wrapped in a standalone/global export wrapper, and written out.

Events emitted, in order: ``resolving``, ``resolve``, ``plugin`` (once per
plugin), ``running``, ``run``, and ``write`` for write builds.

Swap in another engine with the ``engine`` config key (``"module:factory"``).
"""

from __future__ import annotations

import hashlib
import inspect
import json
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NoReturn

from stitch.core.config import SourceMapMode
from stitch.core.detection import type_from_path
from stitch.core.errors import BuildError, BuildSyntaxError
from stitch.core.events import EventBus
from stitch.core.interfaces import BuildResult, Plugin
from stitch.core.logging import get_logger
from stitch.core.sourcemap import identity_map, to_comment, to_url_comment

logger = get_logger(__name__)

DEFAULT_BUILD_DIR = "build"
CACHE_FILE = Path(".stitch") / "cache.json"

# Types built as text; anything else is an asset and is copied or linked.
TEXT_TYPES = frozenset({"js", "mjs", "css", "json", "html", "htm", "txt"})
SCRIPT_TYPES = frozenset({"js", "mjs"})

_PAIRS = {")": "(", "]": "[", "}": "{"}


@dataclass
class SourceFile:
    """The file handed to plugins. Plugins edit ``code`` in place."""

    root: Path
    type: str
    source: str
    path: Path | None = None
    code: str = ""
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.code:
            self.code = self.source

    def slug(self) -> str:
        if self.path is None:
            return f"source.{self.type}"
        try:
            return self.path.relative_to(self.root).as_posix()
        except ValueError:
            return self.path.name

    @property
    def filename(self) -> str | None:
        return None if self.path is None else str(self.path)


def _position(text: str, index: int) -> tuple[int, int]:
    line = text.count("\n", 0, index) + 1
    return line, index - text.rfind("\n", 0, index)


def check_syntax(file: SourceFile) -> None:
    """Cheap structural check.

    JSON is parsed. For scripts and stylesheets brackets must balance outside
    strings and comments; regular expression literals are not recognised.

    Raises:
        BuildSyntaxError: With the offending line and column
    """
    if file.type == "json":
        try:
            json.loads(file.source)
        except json.JSONDecodeError as e:
            raise BuildSyntaxError(
                f"{e.msg} ({e.lineno}:{e.colno})", file.filename, e.lineno, e.colno
            ) from e
        return

    if file.type not in SCRIPT_TYPES and file.type != "css":
        return

    text = file.source
    line_comments = file.type in SCRIPT_TYPES
    stack: list[tuple[str, int]] = []

    def fail(message: str, index: int) -> NoReturn:
        line, col = _position(text, index)
        raise BuildSyntaxError(f"{message} ({line}:{col})", file.filename, line, col)

    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                fail("Unterminated comment", i)
            i = end + 2
            continue
        if line_comments and text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        if ch in "'\"`":
            start = i
            i += 1
            while i < n and text[i] != ch:
                if text[i] == "\\":
                    i += 1
                elif text[i] == "\n" and ch != "`":
                    fail("Unterminated string", start)
                i += 1
            if i >= n:
                fail("Unterminated string", start)
        elif ch in "([{":
            stack.append((ch, i))
        elif ch in ")]}":
            if not stack or stack[-1][0] != _PAIRS[ch]:
                fail(f"Unexpected token {ch}", i)
            stack.pop()
        i += 1

    if stack:
        opener, index = stack[-1]
        fail(f"Unexpected end of input, unclosed {opener}", index)


def _standalone_wrapper(name: str) -> tuple[str, str]:
    head = (
        "(function (root, factory) {\n"
        "  if (typeof define === 'function' && define.amd) define([], factory);\n"
        "  else if (typeof module === 'object' && module.exports) module.exports = factory();\n"
        f"  else root[{json.dumps(name)}] = factory();\n"
        "})(this, function () {\n"
        "var module = { exports: {} }, exports = module.exports;\n"
    )
    return head, "\nreturn module.exports;\n});\n"


def _global_wrapper(name: str) -> tuple[str, str]:
    head = "(function () {\nvar module = { exports: {} }, exports = module.exports;\n"
    tail = f"\n(typeof globalThis !== 'undefined' ? globalThis : this)[{json.dumps(name)}] = module.exports;\n}})();\n"
    return head, tail


class Engine:
    """One engine session; setters chain."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        self._entry: Path | None = None
        self._source: str | None = None
        self._type: str | None = None
        self._development = False
        self._source_map = SourceMapMode.NONE
        self._copy = False
        self._token: str | None = None
        self._cache = True
        self._standalone: str | None = None
        self._global: str | None = None
        self._build_dir = self.root / DEFAULT_BUILD_DIR
        self._plugins: list[Plugin] = []
        self._events = EventBus()

    # -- configuration -------------------------------------------------

    def entry(self, ref: str | Path, type: str | None = None) -> Engine:
        """Set the entry: a file path, or source text when ``type`` is given."""
        if type is None:
            self._entry = Path(ref)
            self._source = None
            self._type = type_from_path(self._entry)
        else:
            self._entry = None
            self._source = str(ref)
            self._type = type
        return self

    def development(self, enabled: bool = True) -> Engine:
        self._development = enabled
        return self

    def source_map(self, mode: SourceMapMode) -> Engine:
        self._source_map = SourceMapMode(mode)
        return self

    def copy(self, enabled: bool = True) -> Engine:
        self._copy = enabled
        return self

    def token(self, token: str) -> Engine:
        self._token = token
        return self

    def cache(self, enabled: bool = True) -> Engine:
        self._cache = enabled
        return self

    def standalone(self, name: str) -> Engine:
        self._standalone = name
        return self

    def global_name(self, name: str) -> Engine:
        self._global = name
        return self

    def build_to(self, directory: str | Path) -> Engine:
        self._build_dir = (self.root / directory).resolve()
        return self

    def use(self, plugin: Plugin) -> Engine:
        self._plugins.append(plugin)
        return self

    def on(self, event: str, listener: Callable[[Any], None]) -> Engine:
        self._events.subscribe(event, listener)
        return self

    @property
    def options(self) -> dict[str, Any]:
        return {
            "development": self._development,
            "source_map": self._source_map.value,
            "copy": self._copy,
            "standalone": self._standalone,
            "global": self._global,
        }

    # -- building ------------------------------------------------------

    def _load(self) -> SourceFile:
        if self._entry is None and self._source is None:
            raise BuildError("No entry set", "Call entry() before run() or write()")

        if self._entry is None:
            return SourceFile(root=self.root, type=self._type or "js", source=self._source or "")

        if not self._entry.is_file():
            raise BuildError(f"Cannot find entry: {self._entry}")
        file_type = self._type or ""
        if file_type not in TEXT_TYPES:
            return SourceFile(root=self.root, type=file_type, source="", path=self._entry)
        try:
            source = self._entry.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise BuildError(f"Cannot read entry {self._entry}: {e}") from e
        return SourceFile(root=self.root, type=file_type, source=source, path=self._entry)

    def _cache_key(self, file: SourceFile) -> str:
        digest = hashlib.sha256()
        digest.update(file.slug().encode())
        digest.update(file.source.encode())
        digest.update(json.dumps(self.options, sort_keys=True).encode())
        for plugin in self._plugins:
            digest.update(repr(getattr(plugin, "name", plugin)).encode())
            digest.update(str(getattr(plugin, "fingerprint", "")).encode())
        return digest.hexdigest()

    def _read_cache(self) -> dict[str, Any]:
        path = self.root / CACHE_FILE
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _lookup_cache(self, slug: str, key: str) -> BuildResult | None:
        entry = self._read_cache().get(slug)
        if not isinstance(entry, dict) or entry.get("key") != key:
            return None
        return BuildResult(code=entry.get("code", ""), map=entry.get("map"))

    def _store_cache(self, slug: str, key: str, result: BuildResult) -> None:
        """Keep the latest build per output file; older builds are replaced."""
        path = self.root / CACHE_FILE
        data = self._read_cache()
        data[slug] = {"key": key, "code": result.code, "map": result.map}
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data))
            os.replace(tmp, path)
        except OSError as e:
            logger.warning(f"Could not write build cache {path}: {e}")

    async def _build(self, file: SourceFile) -> BuildResult:
        self._events.publish("resolving", file)
        self._events.publish("resolve", file)

        if file.type not in TEXT_TYPES:
            # Assets pass through untouched.
            self._events.publish("running", file)
            self._events.publish("run", file)
            return BuildResult()

        for plugin in self._plugins:
            self._events.publish("plugin", getattr(plugin, "name", repr(plugin)))

        self._events.publish("running", file)

        key = self._cache_key(file) if self._cache else None
        if key is not None:
            hit = self._lookup_cache(file.slug(), key)
            if hit is not None:
                logger.debug(f"Cache hit for {file.slug()}")
                self._events.publish("run", file)
                return hit

        check_syntax(file)

        for plugin in self._plugins:
            try:
                outcome = plugin(file, self)
                if inspect.isawaitable(outcome):
                    await outcome
            except BuildError:
                raise
            except Exception as e:
                name = getattr(plugin, "name", repr(plugin))
                raise BuildError(f"Plugin {name} failed on {file.slug()}: {e}") from e

        head, tail = "", ""
        if file.type in SCRIPT_TYPES:
            if self._standalone:
                head, tail = _standalone_wrapper(self._standalone)
            elif self._global:
                head, tail = _global_wrapper(self._global)

        code = head + file.code + tail
        source_map = None
        if self._source_map is not SourceMapMode.NONE:
            source_map = identity_map(file.slug(), file.source, file.code, offset=head.count("\n"))

        result = BuildResult(code=code, map=source_map)
        if key is not None:
            self._store_cache(file.slug(), key, result)

        self._events.publish("run", file)
        return result

    async def run(self) -> BuildResult:
        """Build the entry in memory; the map (if any) is returned, not appended."""
        return await self._build(self._load())

    async def write(self) -> BuildResult:
        """Build the entry and write it under the build directory."""
        file = self._load()
        result = await self._build(file)

        out = self._build_dir / file.slug()
        try:
            out.parent.mkdir(parents=True, exist_ok=True)
            if file.type not in TEXT_TYPES:
                self._write_asset(file, out)
            else:
                code = result.code
                if result.map and self._source_map is SourceMapMode.EXTERNAL:
                    map_path = out.with_name(out.name + ".map")
                    map_path.write_text(json.dumps(result.map), encoding="utf-8")
                    code += "\n" + to_url_comment(map_path.name, file.type)
                elif result.map:
                    code += "\n" + to_comment(result.map, file.type)
                out.write_text(code, encoding="utf-8")
        except OSError as e:
            raise BuildError(f"Cannot write {out}: {e}") from e

        self._events.publish("write", out)
        return result

    def _write_asset(self, file: SourceFile, out: Path) -> None:
        assert file.path is not None
        if out.is_symlink() or out.exists():
            out.unlink()
        if self._copy:
            shutil.copy2(file.path, out)
        else:
            out.symlink_to(file.path.resolve())
