"""Common plugin interfaces used by the check-in pipeline."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..errors import CheckInError


class PluginError(CheckInError):
    """Raised when plugin registration or execution breaks the contract."""


@dataclass(frozen=True)
class PluginOptions:
    """Run-wide switches every plugin receives."""

    check: bool = False
    resolve_config: bool = True


@dataclass(frozen=True)
class CheckOutcome:
    """A single pass/fail verdict reported by a plugin."""

    ok: bool
    reason: Optional[str] = None


@dataclass
class PluginResult:
    """Result returned by a plugin for one file.

    ``examined`` signals that the file is in the plugin's domain, ``checks``
    holds every verdict in reporting order and ``new_content`` is the content
    the plugin wants written, or ``None`` when it leaves the file alone.
    """

    examined: bool = False
    checks: List[CheckOutcome] = field(default_factory=list)
    new_content: Optional[str] = None

    def mark_examined(self) -> None:
        self.examined = True

    def mark_checked(self, ok: bool, reason: Optional[str] = None) -> None:
        self.checks.append(CheckOutcome(ok=ok, reason=reason))

    def write_file(self, content: str) -> None:
        """Record replacement content; a later call overwrites an earlier one."""

        self.new_content = content


class BasePlugin(ABC):
    """Base class used by the pipeline to run a plugin against file content.

    The class is its own factory: the plugin manager instantiates it with the
    repository root and the directory the run was started from.
    """

    name: str = ""

    def __init__(self, root_directory: Path, directory: Path) -> None:
        self.root_directory = Path(root_directory)
        self.directory = Path(directory)
        if not self.name:
            self.name = self.__class__.__name__

    @classmethod
    def is_available(cls) -> bool:
        """Return ``True`` when the plugin can run in this environment."""

        return True

    @abstractmethod
    def run(self, filename: Path, content: str, options: PluginOptions) -> PluginResult:
        """Inspect ``content`` of ``filename`` and return a :class:`PluginResult`."""


__all__ = [
    "BasePlugin",
    "CheckOutcome",
    "PluginError",
    "PluginOptions",
    "PluginResult",
]
