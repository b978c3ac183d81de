"""Trailing whitespace and end-of-file fixer."""
from __future__ import annotations

import re
from pathlib import Path

from .base_plugin import BasePlugin, PluginOptions, PluginResult

_TRAILING_WHITESPACE = re.compile(r"[ \t]+(?=\r?\n|\Z)")


def fix_whitespace(content: str) -> str:
    """Strip trailing blanks and leave exactly one newline at the end."""

    newline = "\r\n" if "\r\n" in content else "\n"
    body = _TRAILING_WHITESPACE.sub("", content).rstrip("\r\n")
    return body + newline if body else ""


class WhitespacePlugin(BasePlugin):
    """Builtin fixer that works on any text file."""

    name = "whitespace"

    def run(self, filename: Path, content: str, options: PluginOptions) -> PluginResult:
        result = PluginResult()
        if "\0" in content:
            return result

        result.mark_examined()
        fixed = fix_whitespace(content)

        if options.check:
            if fixed == content:
                result.mark_checked(True)
            elif _TRAILING_WHITESPACE.search(content):
                result.mark_checked(False, "trailing whitespace")
            elif not content.endswith("\n"):
                result.mark_checked(False, "missing final newline")
            else:
                result.mark_checked(False, "blank lines at end of file")
            return result

        if fixed != content:
            result.write_file(fixed)
        return result


__all__ = ["WhitespacePlugin", "fix_whitespace"]
