"""Plugin loader.

A plugin identifier given with ``-u/--use`` is one of:

- ``module:attr`` - ``<root>/<module>.py`` if it exists, otherwise an
  importable module. ``attr`` is called with no arguments and must return the
  transform.
- ``name`` - a plugin directory holding ``plugin.yaml``, looked up under
  ``<root>/plugins/`` and then under the built-in plugins directory.
"""

from __future__ import annotations

import ast
import hashlib
import importlib
import importlib.util
import json
import sys
import types
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from stitch.core.errors import PluginError, PluginNotFoundError, PluginValidationError
from stitch.core.logging import get_logger

logger = get_logger(__name__)

MANIFEST_NAME = "plugin.yaml"
PLUGINS_PACKAGE = "stitch_plugins"


@dataclass
class PluginManifest:
    """Plugin manifest loaded from plugin.yaml."""

    name: str
    version: str
    description: str
    entrypoint: str  # "module:ClassName"
    types: list[str] = field(default_factory=list)  # empty means all types
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class LoadedPlugin:
    """A resolved transform, callable the way engines call plugins."""

    name: str
    transform: Any
    types: tuple[str, ...] = ()
    # Changes whenever the plugin code or its manifest config changes.
    fingerprint: str = ""

    def applies_to(self, file: Any) -> bool:
        return not self.types or getattr(file, "type", None) in self.types

    def __call__(self, file: Any, engine: Any) -> Any:
        if not self.applies_to(file):
            return None
        return self.transform(file, engine)


def find_builtin_plugins_dir() -> Path | None:
    """Locate the repository's built-in ``plugins`` directory.

    Search from this file upwards (works for editable installs and checkouts).
    """
    p = Path(__file__).resolve().parent
    for _ in range(6):
        candidate = p / "plugins"
        if candidate.is_dir() and any(candidate.glob(f"*/{MANIFEST_NAME}")):
            return candidate
        if p.parent == p:
            break
        p = p.parent
    return None


class PluginLoader:
    """Resolve plugin identifiers to transforms, preserving order."""

    def __init__(self, root: Path, builtin_plugins_dir: Path | None = None) -> None:
        self.root = root
        self.builtin_plugins_dir = builtin_plugins_dir or find_builtin_plugins_dir()
        self._manifests: dict[str, PluginManifest] = {}

    def load_all(self, identifiers: Iterable[str]) -> list[LoadedPlugin]:
        """Load every identifier, in declared order.

        Raises:
            PluginError: On the first plugin that cannot be loaded
        """
        return [self.load(identifier) for identifier in identifiers]

    def load(self, identifier: str) -> LoadedPlugin:
        identifier = identifier.strip()
        if not identifier:
            raise PluginNotFoundError(identifier)

        if ":" in identifier:
            return self._load_reference(identifier)

        plugin_dir = self._find_plugin_dir(identifier)
        if plugin_dir is None:
            raise PluginNotFoundError(identifier)
        return self.load_plugin(plugin_dir)

    def load_plugin(self, plugin_dir: Path, validate: bool = True) -> LoadedPlugin:
        """Load a plugin directory.

        Raises:
            PluginError: If plugin loading fails
        """
        manifest = self._load_manifest(plugin_dir)

        if validate:
            self._validate_plugin(plugin_dir, manifest)

        module_name, class_name = manifest.entrypoint.split(":", 1)
        module = self._load_module_file(
            plugin_dir / f"{module_name}.py",
            f"{PLUGINS_PACKAGE}.{_module_key(plugin_dir.name)}.{module_name}",
            package_dir=plugin_dir,
        )
        plugin_class = _get_attr(module, class_name, manifest.entrypoint)

        try:
            instance = plugin_class(dict(manifest.config))
        except Exception as e:
            raise PluginError(f"Failed to instantiate plugin '{manifest.name}': {e}") from e

        self._manifests[manifest.name] = manifest
        logger.debug(f"Loaded plugin {manifest.name} {manifest.version} from {plugin_dir}")
        return LoadedPlugin(
            name=manifest.name,
            transform=_require_callable(instance, manifest.name),
            types=tuple(manifest.types),
            fingerprint=_fingerprint(
                plugin_dir / f"{module_name}.py", manifest.version, manifest.types, manifest.config
            ),
        )

    def get_manifest(self, name: str) -> PluginManifest:
        if name not in self._manifests:
            raise PluginNotFoundError(name)
        return self._manifests[name]

    def _find_plugin_dir(self, name: str) -> Path | None:
        for base in (self.root / "plugins", self.builtin_plugins_dir):
            if base is None:
                continue
            candidate = base / name
            if (candidate / MANIFEST_NAME).exists():
                return candidate
        return None

    def _load_reference(self, identifier: str) -> LoadedPlugin:
        module_name, attr = identifier.split(":", 1)
        if not module_name or not attr:
            raise PluginError(f"Invalid plugin reference: {identifier}")

        local_file = self.root / (module_name.replace(".", "/") + ".py")
        if local_file.exists():
            module = self._load_module_file(
                local_file, f"{PLUGINS_PACKAGE}.{_module_key(module_name)}"
            )
        else:
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                raise PluginNotFoundError(identifier) from e

        factory = _get_attr(module, attr, identifier)
        try:
            instance = factory()
        except Exception as e:
            raise PluginError(f"Failed to create plugin '{identifier}': {e}") from e

        module_file = getattr(module, "__file__", None)
        return LoadedPlugin(
            name=identifier,
            transform=_require_callable(instance, identifier),
            fingerprint=_fingerprint(Path(module_file) if module_file else None),
        )

    def _load_manifest(self, plugin_dir: Path) -> PluginManifest:
        manifest_path = plugin_dir / MANIFEST_NAME

        if not manifest_path.exists():
            raise PluginError(f"Plugin manifest not found: {manifest_path}")

        try:
            with open(manifest_path) as f:
                data = yaml.safe_load(f)

            manifest = PluginManifest(
                name=data["name"],
                version=str(data.get("version", "0.0.0")),
                description=data.get("description", ""),
                entrypoint=data["entrypoint"],
                types=list(data.get("types") or []),
                config=dict(data.get("config") or {}),
            )
        except Exception as e:
            raise PluginError(f"Failed to load manifest from {manifest_path}: {e}") from e

        if ":" not in manifest.entrypoint:
            raise PluginError(f"Invalid entrypoint format: {manifest.entrypoint}")
        return manifest

    def _load_module_file(
        self, module_file: Path, unique_name: str, package_dir: Path | None = None
    ) -> types.ModuleType:
        """Load a module from a file under an isolated namespace.

        Never register plugin modules under generic names: several plugins
        may use 'plugin:SomePlugin' and would overwrite each other.
        """
        if not module_file.exists():
            raise PluginError(f"Module file not found: {module_file}")

        parent = unique_name.rsplit(".", 1)[0]
        _ensure_package(PLUGINS_PACKAGE)
        if parent != PLUGINS_PACKAGE:
            _ensure_package(parent, package_dir)

        spec = importlib.util.spec_from_file_location(unique_name, module_file)
        if spec is None or spec.loader is None:
            raise PluginError(f"Failed to load module spec: {module_file}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[unique_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            sys.modules.pop(unique_name, None)
            raise PluginError(f"Failed to load plugin module {module_file}: {e}") from e
        return module

    def _validate_plugin(self, plugin_dir: Path, manifest: PluginManifest) -> None:
        """Check syntax and class presence before executing plugin code.

        Raises:
            PluginValidationError: If validation fails
        """
        module_name, class_name = manifest.entrypoint.split(":", 1)
        module_file = plugin_dir / f"{module_name}.py"

        if not module_file.exists():
            raise PluginValidationError(f"Plugin module not found: {module_file}")

        try:
            tree = ast.parse(module_file.read_text(), filename=str(module_file))
        except SyntaxError as e:
            raise PluginValidationError(
                f"Plugin validation failed for '{manifest.name}': syntax error in "
                f"{module_file}: {e}"
            ) from e

        if not any(
            isinstance(node, ast.ClassDef) and node.name == class_name for node in ast.walk(tree)
        ):
            raise PluginValidationError(
                f"Plugin validation failed for '{manifest.name}': "
                f"class '{class_name}' not found in {module_file}"
            )


def _module_key(name: str) -> str:
    return name.replace("-", "_").replace(".", "_").replace("/", "_")


def _ensure_package(name: str, path: Path | None = None) -> None:
    if name in sys.modules:
        return
    pkg = types.ModuleType(name)
    pkg.__path__ = [] if path is None else [str(path)]
    sys.modules[name] = pkg


def _get_attr(module: types.ModuleType, attr: str, identifier: str) -> Any:
    if not hasattr(module, attr):
        raise PluginError(f"'{attr}' not found for plugin {identifier}")
    return getattr(module, attr)


def _require_callable(instance: Any, name: str) -> Any:
    if not callable(instance):
        raise PluginValidationError(
            f"Plugin '{name}' is not callable",
            "Plugins must be callables taking (file, engine)",
        )
    return instance


def _fingerprint(module_file: Path | None, *settings: Any) -> str:
    digest = hashlib.sha256()
    digest.update(json.dumps(settings, sort_keys=True, default=str).encode())
    if module_file is not None:
        try:
            digest.update(module_file.read_bytes())
        except OSError:
            digest.update(str(module_file).encode())
    return digest.hexdigest()
