"""stitch core - the orchestration kernel.

The kernel sequences calls into an engine; engines, plugins and watchers are
collaborators behind the protocols in ``core.interfaces``.
"""

from stitch.core.config import (
    ConfigResolver,
    RunConfig,
    SourceMapMode,
    build_run_config,
    find_root,
    for_stream,
    resolve_source_map_mode,
)
from stitch.core.errors import (
    BuildError,
    BuildSyntaxError,
    ConfigError,
    PluginError,
    PluginNotFoundError,
    PluginValidationError,
    StitchError,
    TypeDetectionError,
)
from stitch.core.events import EventBus
from stitch.core.interfaces import BuildResult, IEngine, INamed, IWatcher, Plugin
from stitch.core.loader import LoadedPlugin, PluginLoader, PluginManifest
from stitch.core.logging import BuildLog, VerbosityLevel, get_logger, set_colors, set_verbosity
from stitch.core.modes import RunMode, resolve_run_mode

__all__ = [
    # Config
    "ConfigResolver",
    "RunConfig",
    "SourceMapMode",
    "build_run_config",
    "find_root",
    "for_stream",
    "resolve_source_map_mode",
    # Errors
    "StitchError",
    "ConfigError",
    "TypeDetectionError",
    "PluginError",
    "PluginNotFoundError",
    "PluginValidationError",
    "BuildError",
    "BuildSyntaxError",
    # Events
    "EventBus",
    # Interfaces
    "BuildResult",
    "IEngine",
    "INamed",
    "IWatcher",
    "Plugin",
    # Loader
    "PluginLoader",
    "PluginManifest",
    "LoadedPlugin",
    # Logging
    "BuildLog",
    "VerbosityLevel",
    "get_logger",
    "set_colors",
    "set_verbosity",
    # Modes
    "RunMode",
    "resolve_run_mode",
]
