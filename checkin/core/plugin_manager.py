"""Resolution and instantiation of check-in plugins."""
from __future__ import annotations

import importlib
import inspect
import logging
from importlib.metadata import entry_points
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, Union

from ..pipeline.plugins import PluginPipeline
from ..plugins.base_plugin import BasePlugin, PluginError

LOGGER = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "checkin.plugins"

BUILTIN_PLUGINS: Dict[str, str] = {
    "whitespace": "checkin.plugins.whitespace:WhitespacePlugin",
    "black": "checkin.plugins.command:BlackPlugin",
    "ruff": "checkin.plugins.command:RuffFormatPlugin",
}


class PluginLoadError(PluginError):
    """Raised when a plugin cannot be resolved, imported or instantiated."""


def _is_valid_plugin_class(obj: Any) -> bool:
    return inspect.isclass(obj) and issubclass(obj, BasePlugin) and not inspect.isabstract(obj)


def _import_spec(spec: str) -> Any:
    module_name, _, attribute = spec.partition(":")
    if not module_name or not attribute:
        raise PluginLoadError(f"Plugin specification must be in 'module:ClassName' format: {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise PluginLoadError(f"Failed to import plugin module '{module_name}': {exc}") from exc
    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise PluginLoadError(
            f"Plugin class '{attribute}' not found in module '{module_name}'"
        ) from exc


class PluginManager:
    """Resolve plugin names to :class:`BasePlugin` subclasses.

    A name is looked up, in order, among the builtin plugins, as a
    ``module:ClassName`` specification, and among the installed entry points
    of the ``checkin.plugins`` group.
    """

    def __init__(
        self,
        builtins: Optional[Mapping[str, str]] = None,
        entry_point_group: str = ENTRY_POINT_GROUP,
    ) -> None:
        self._builtins = dict(BUILTIN_PLUGINS if builtins is None else builtins)
        self._entry_point_group = entry_point_group
        self._classes: Dict[str, Type[BasePlugin]] = {}

    @property
    def builtin_names(self) -> Sequence[str]:
        return tuple(self._builtins)

    def detect_available_builtins(self) -> List[str]:
        """Return the builtin plugin names usable in this environment."""

        available = []
        for name in self._builtins:
            if self.resolve(name).is_available():
                available.append(name)
        return available

    def resolve(self, name: str) -> Type[BasePlugin]:
        if name in self._classes:
            return self._classes[name]

        if name in self._builtins:
            try:
                candidate = _import_spec(self._builtins[name])
            except PluginLoadError as exc:
                raise PluginLoadError(f"Failed to load builtin {name!r}") from exc
        elif ":" in name:
            candidate = _import_spec(name)
        else:
            candidate = self._load_entry_point(name)

        if not _is_valid_plugin_class(candidate):
            raise PluginLoadError(f"Plugin {name!r} must resolve to a BasePlugin subclass")

        self._classes[name] = candidate
        return candidate

    def build_pipeline(
        self,
        names: Union[str, Iterable[str]],
        root_directory: Path,
        directory: Path,
    ) -> PluginPipeline:
        """Instantiate ``names`` in order and combine them into one pipeline."""

        if isinstance(names, str):
            names = [names]
        pipeline = PluginPipeline()
        for name in names:
            plugin_cls = self.resolve(name)
            try:
                plugin = plugin_cls(root_directory, directory)
            except TypeError as exc:
                raise PluginLoadError(f"Failed to instantiate plugin {name!r}: {exc}") from exc
            pipeline.register(plugin)
        LOGGER.debug("Plugin pipeline: %s", ", ".join(pipeline.names) or "<empty>")
        return pipeline

    def _load_entry_point(self, name: str) -> Any:
        for entry_point in entry_points(group=self._entry_point_group):
            if entry_point.name == name:
                try:
                    return entry_point.load()
                except Exception as exc:  # noqa: BLE001 - surface the plugin's own import error
                    raise PluginLoadError(f"Error importing plugin {name!r}: {exc}") from exc
        raise PluginLoadError(f"Failed to resolve plugin {name!r}")


def detect_available_builtins() -> List[str]:
    return PluginManager().detect_available_builtins()


__all__ = [
    "BUILTIN_PLUGINS",
    "ENTRY_POINT_GROUP",
    "PluginLoadError",
    "PluginManager",
    "detect_available_builtins",
]
