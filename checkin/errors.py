"""Exceptions shared across the check-in engine."""

from __future__ import annotations

from typing import Optional, Sequence


class CheckInError(RuntimeError):
    """Base class for fatal errors that abort a run."""


class NotAVersionControlRepo(CheckInError):
    """Raised when no git repository encloses the working directory."""


class InvalidState(CheckInError):
    """Raised when the index is asked about a path with no recorded change."""


class ConfigError(CheckInError):
    """Raised when the configuration file is malformed."""


class ExternalCommandFailure(CheckInError):
    """Raised when an external process exits non-zero or is signaled."""

    def __init__(
        self,
        message: str,
        stderr: str = "",
        *,
        returncode: Optional[int] = None,
        command: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode
        self.command = tuple(command)


__all__ = [
    "CheckInError",
    "ConfigError",
    "ExternalCommandFailure",
    "InvalidState",
    "NotAVersionControlRepo",
]
