"""Run configuration and layered config resolution.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (STITCH_*)
3. Project config file (<root>/stitch.yaml)
4. User config file (~/.config/stitch/config.yaml)
5. Defaults

Mode-selecting flags (quiet, verbose, watch, stdout, type, entries) are
CLI-only; everything that configures an engine session can also come from
the environment or a config file.
"""

from __future__ import annotations

import argparse
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from stitch.core.errors import ConfigError

PROJECT_CONFIG_NAME = "stitch.yaml"
PROJECT_MARKERS = (PROJECT_CONFIG_NAME, "package.json", "component.json")
DEFAULT_ENGINE = "stitch.engine:Engine"

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


class SourceMapMode(str, Enum):
    NONE = "none"
    INLINE = "inline"
    EXTERNAL = "external"


def resolve_source_map_mode(development: bool, external: bool) -> SourceMapMode:
    """Derive the source-map mode from the two flags.

    External always wins; development alone means inline.
    """
    if external:
        return SourceMapMode.EXTERNAL
    if development:
        return SourceMapMode.INLINE
    return SourceMapMode.NONE


def for_stream(mode: SourceMapMode) -> SourceMapMode:
    """Mode to use when the artifact goes to a stream (no sidecar possible)."""
    if mode is SourceMapMode.NONE:
        return mode
    return SourceMapMode.INLINE


@dataclass(frozen=True)
class RunConfig:
    """Normalized invocation, computed once and read-only thereafter."""

    root: Path
    entries: tuple[str, ...] = ()
    quiet: bool = False
    verbose: bool = False
    copy: bool = False
    cache: bool = True
    development: bool = False
    global_name: str | None = None
    external_source_maps: bool = False
    output: Path | None = None
    type: str | None = None
    use: tuple[str, ...] = ()
    watch: bool = False
    standalone: str | None = None
    stdout: bool = False
    color: bool = True
    watch_interval: float = 0.5
    engine: str = DEFAULT_ENGINE

    @property
    def source_map_mode(self) -> SourceMapMode:
        return resolve_source_map_mode(self.development, self.external_source_maps)


def find_root(start: Path, explicit: str | Path | None = None) -> Path:
    """Resolve the project root.

    An explicit root wins. Otherwise search upward from ``start`` for a
    project marker; fall back to ``start`` itself.
    """
    if explicit:
        return (start / Path(explicit).expanduser()).resolve()

    p = start.resolve()
    while True:
        if any((p / marker).exists() for marker in PROJECT_MARKERS):
            return p
        if p.parent == p:
            return start.resolve()
        p = p.parent


class ConfigResolver:
    """Resolve configuration values with strict priority.

    Example:
        resolver = ConfigResolver(
            cli_args={"development": True},
            project_config_path=root / "stitch.yaml",
        )

        value, source = resolver.resolve("development")
        # value = True, source = "cli"
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        project_config_path: Path | None = None,
        user_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.cli_args = cli_args or {}
        self.project_config_path = project_config_path
        self.user_config_path = user_config_path or Path.home() / ".config/stitch/config.yaml"
        self.defaults = defaults if defaults is not None else self._default_config()
        self.environ = os.environ if environ is None else environ

        self._project_config: dict[str, Any] | None = None
        self._user_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'watch.interval')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._get_nested(self.cli_args, key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        if self.project_config_path is not None:
            value = self._get_nested(self._get_project_config(), key)
            if value is not None:
                return value, "project_config"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def get(self, key: str, default: Any = None) -> Any:
        try:
            value, _source = self.resolve(key)
        except ConfigError as e:
            if "not found in any source" in str(e):
                return default
            raise
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
            return True
        if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
            return False
        raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")

    def get_str(self, key: str) -> str | None:
        value = self.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ConfigError(f"Config key '{key}' must be a string, got {type(value).__name__}")
        return value

    def get_float(self, key: str, default: float) -> float:
        value = self.get(key, default)
        try:
            result = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Config key '{key}' must be a number, got {value!r}") from e
        if result <= 0:
            raise ConfigError(f"Config key '{key}' must be positive, got {value!r}")
        return result

    def get_list(self, key: str) -> list[str]:
        value = self.get(key, [])
        if isinstance(value, str):
            # Env form: STITCH_USE=a,b
            return [item.strip() for item in value.split(",") if item.strip()]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError(f"Config key '{key}' must be a list of strings")
        return list(value)

    def _from_env(self, key: str) -> str | None:
        """Environment variable format: STITCH_KEY_NAME (dots become underscores)."""
        env_key = f"STITCH_{key.upper().replace('.', '_')}"
        return self.environ.get(env_key)

    def _get_project_config(self) -> dict[str, Any]:
        if self._project_config is None:
            assert self.project_config_path is not None
            self._project_config = self._load_yaml(self.project_config_path)
        return self._project_config

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'watch': {'interval': 1}}
            _get_nested(data, 'watch.interval') -> 1
        """
        current: Any = data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        return {
            "copy": False,
            "cache": True,
            "development": False,
            "external_source_maps": False,
            "color": True,
            "use": [],
            "engine": DEFAULT_ENGINE,
            "watch": {"interval": 0.5},
        }


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Keep only the flags that were actually given on the command line."""
    keys = (
        "copy",
        "cache",
        "development",
        "global_name",
        "external_source_maps",
        "output",
        "standalone",
        "use",
        "color",
    )
    overrides: dict[str, Any] = {}
    for key in keys:
        value = getattr(args, key, None)
        if value is not None:
            overrides[key] = value
    return overrides


def build_run_config(
    args: argparse.Namespace,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    user_config_path: Path | None = None,
) -> RunConfig:
    """Build the RunConfig from parsed CLI arguments.

    Raises:
        ConfigError: If a config source holds an invalid value
    """
    cwd = cwd or Path.cwd()
    env = os.environ if environ is None else environ

    root = find_root(cwd, getattr(args, "root", None) or env.get("STITCH_ROOT"))
    resolver = ConfigResolver(
        cli_args=_cli_overrides(args),
        project_config_path=root / PROJECT_CONFIG_NAME,
        user_config_path=user_config_path,
        environ=env,
    )

    output: Path | None = None
    output_value = resolver.get_str("output")
    if output_value:
        _value, source = resolver.resolve("output")
        # Flags and env are relative to where the user stands; files to the root.
        base = cwd if source in ("cli", "env") else root
        output = (base / Path(output_value).expanduser()).resolve()

    return RunConfig(
        root=root,
        entries=tuple(getattr(args, "entries", None) or ()),
        quiet=bool(getattr(args, "quiet", False)),
        verbose=bool(getattr(args, "verbose", False)),
        copy=resolver.get_bool("copy"),
        cache=resolver.get_bool("cache", True),
        development=resolver.get_bool("development"),
        global_name=resolver.get_str("global_name"),
        external_source_maps=resolver.get_bool("external_source_maps"),
        output=output,
        type=getattr(args, "type", None),
        use=tuple(resolver.get_list("use")),
        watch=bool(getattr(args, "watch", False)),
        standalone=resolver.get_str("standalone"),
        stdout=bool(getattr(args, "stdout", False)),
        color=resolver.get_bool("color", True),
        watch_interval=resolver.get_float("watch.interval", 0.5),
        engine=resolver.get_str("engine") or DEFAULT_ENGINE,
    )
