"""Composition of several plugins into one pass per file."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..plugins.base_plugin import BasePlugin, CheckOutcome, PluginError, PluginOptions, PluginResult


class PluginPipeline:
    """Runs registered plugins in order and folds their results.

    Each plugin sees the content produced by the plugins before it. The
    folded result carries at most one check verdict and at most one write,
    whatever the number of plugins involved.
    """

    def __init__(self, plugins: Optional[Iterable[BasePlugin]] = None) -> None:
        self._plugins: List[BasePlugin] = []
        if plugins:
            for plugin in plugins:
                self.register(plugin)

    def register(self, plugin: BasePlugin) -> None:
        if not plugin.name:
            raise PluginError("Plugin must define a name")
        self._plugins.append(plugin)

    def get(self, name: str) -> BasePlugin:
        for plugin in self._plugins:
            if plugin.name == name:
                return plugin
        raise PluginError(f"Unknown plugin '{name}'")

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(plugin.name for plugin in self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def run(self, filename: Path, content: str, options: PluginOptions) -> PluginResult:
        combined = PluginResult()
        failures: List[str] = []
        is_checked = False
        is_written = False

        for plugin in self._plugins:
            result = plugin.run(filename, content, options)
            if not isinstance(result, PluginResult):
                raise PluginError(
                    f"Plugin '{plugin.name}' returned unexpected result: {result!r}"
                )

            if result.examined:
                combined.examined = True

            for outcome in result.checks:
                is_checked = True
                if not outcome.ok:
                    failures.append(
                        f"{outcome.reason} ({plugin.name})" if outcome.reason else plugin.name
                    )

            if result.new_content is not None:
                is_written = True
                content = result.new_content

        if is_checked:
            combined.checks.append(CheckOutcome(ok=not failures, reason=", ".join(failures)))
        if is_written:
            combined.new_content = content
        return combined


__all__ = ["PluginPipeline"]
