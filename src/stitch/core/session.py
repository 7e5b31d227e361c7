"""Engine session factory."""

from __future__ import annotations

import importlib
from pathlib import Path

from stitch.core.config import SourceMapMode
from stitch.core.context import BuildContext, VirtualEntry
from stitch.core.errors import PluginError
from stitch.core.event_log import EventLogAdapter
from stitch.core.interfaces import EngineFactory, IEngine


def load_engine_factory(spec: str) -> EngineFactory:
    """Import an engine factory given as ``"module:attr"``.

    Raises:
        PluginError: If the factory cannot be imported
    """
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise PluginError(f"Invalid engine reference: {spec!r}", "Use 'module:factory'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise PluginError(f"Failed to import engine module '{module_name}': {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise PluginError(f"Engine factory '{attr}' not found in '{module_name}'") from e


def create_session(
    entry: Path | str | VirtualEntry,
    ctx: BuildContext,
    *,
    source_map: SourceMapMode | None = None,
    output: Path | None = None,
    label_type: str | None = None,
) -> IEngine:
    """Build one configured engine session for ``entry``.

    Args:
        entry: File path (relative to the working directory) or virtual entry
        ctx: Build context
        source_map: Overrides the configured source-map mode (stream modes)
        output: Session-local output directory; an explicit --output wins
        label_type: Type used to recognise the stdin entry in event labels
            (defaults to the declared --type)
    """
    config = ctx.config
    engine = ctx.engine_factory(config.root)

    if isinstance(entry, VirtualEntry):
        engine.entry(entry.source, entry.type)
    else:
        engine.entry((ctx.cwd / entry).resolve())

    engine.development(config.development)
    engine.source_map(source_map if source_map is not None else config.source_map_mode)
    engine.copy(config.copy)
    engine.cache(config.cache)

    if ctx.token:
        engine.token(ctx.token)
    if config.standalone:
        engine.standalone(config.standalone)
    if config.global_name is not None:
        engine.global_name(config.global_name)

    build_dir = config.output or output
    if build_dir is not None:
        engine.build_to(build_dir)

    for plugin in ctx.plugins:
        engine.use(plugin)

    if not config.quiet:
        EventLogAdapter(
            ctx.log, label_type or config.type, verbose=config.verbose, cwd=ctx.cwd
        ).attach(engine)

    return engine
