"""Formatter plugins that pipe file content through an external command."""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.process import run_command
from ..core.scm import decode_content, encode_content
from .base_plugin import BasePlugin, PluginOptions, PluginResult

LOGGER = logging.getLogger(__name__)


class CommandFormatterPlugin(BasePlugin):
    """Base class for formatters reading stdin and writing stdout.

    Subclasses set ``executable``, ``file_extensions`` and implement
    :meth:`build_command`.
    """

    executable: str = ""
    file_extensions: Sequence[str] = ()

    @classmethod
    def is_available(cls) -> bool:
        return bool(cls.executable) and shutil.which(cls.executable) is not None

    def applies_to(self, filename: Path) -> bool:
        extensions = [ext.lower() for ext in self.file_extensions]
        return not extensions or filename.suffix.lower() in extensions

    def build_command(self, filename: Path, options: PluginOptions) -> List[str]:
        raise NotImplementedError

    def format(self, filename: Path, content: str, options: PluginOptions) -> Optional[str]:
        """Return the formatted content, or ``None`` when the tool excludes ``filename``."""

        output = run_command(
            self.build_command(filename, options),
            cwd=self.directory,
            input=encode_content(content),
        )
        return decode_content(output)

    def run(self, filename: Path, content: str, options: PluginOptions) -> PluginResult:
        result = PluginResult()
        if not self.applies_to(filename):
            return result

        formatted = self.format(filename, content, options)
        if formatted is None:
            LOGGER.debug("%s excludes %s", self.name, filename)
            return result

        result.mark_examined()

        if options.check:
            result.mark_checked(formatted == content)
        elif formatted != content:
            result.write_file(formatted)
        return result


class BlackPlugin(CommandFormatterPlugin):
    name = "black"
    executable = "black"
    file_extensions = (".py", ".pyi")

    def build_command(self, filename: Path, options: PluginOptions) -> List[str]:
        return [self.executable, "--quiet", "--stdin-filename", str(filename), "-"]

    def format(self, filename: Path, content: str, options: PluginOptions) -> Optional[str]:
        # black prints nothing for a file matching its force-exclude setting
        formatted = super().format(filename, content, options)
        if not formatted and content.strip():
            return None
        return formatted


class RuffFormatPlugin(CommandFormatterPlugin):
    name = "ruff"
    executable = "ruff"
    file_extensions = (".py", ".pyi")

    def build_command(self, filename: Path, options: PluginOptions) -> List[str]:
        command = [self.executable, "format", "--stdin-filename", str(filename)]
        if options.resolve_config:
            command.append("--force-exclude")
        else:
            command.append("--isolated")
        command.append("-")
        return command


__all__ = ["BlackPlugin", "CommandFormatterPlugin", "RuffFormatPlugin"]
