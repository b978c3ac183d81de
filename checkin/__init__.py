"""Apply formatter and linter fixups to changed files, partial stages included."""

from .core.orchestrator import (
    ChangeOrchestrator,
    FailReason,
    RunObserver,
    RunOptions,
    RunResult,
    run_check_in,
)
from .errors import CheckInError

__all__ = [
    "ChangeOrchestrator",
    "CheckInError",
    "FailReason",
    "RunObserver",
    "RunOptions",
    "RunResult",
    "run_check_in",
]
