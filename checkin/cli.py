"""Command line interface for the check-in fixup tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Tuple

from .config import CliOverrides, build_run_options
from .core.orchestrator import (
    ChangeOrchestrator,
    FailReason,
    JournalObserver,
    RunObserver,
    RunResult,
)
from .errors import CheckInError, ExternalCommandFailure
from .pipeline.jsonl import RunJournal


class ConsoleObserver(RunObserver):
    """Print one line per notable event."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream or sys.stdout

    def _print(self, message: str) -> None:
        print(message, file=self.stream)

    def on_found_changed_files(self, paths: Sequence[str]) -> None:
        noun = "file" if len(paths) == 1 else "files"
        self._print(f"Found {len(paths)} changed {noun}.")

    def on_partially_staged_file(self, path: str) -> None:
        self._print(f"Fixing up partially staged {path}.")

    def on_write_file(self, path: str) -> None:
        self._print(f"Fixing up {path}.")

    def on_check_file(self, path: str, ok: bool, reason: Optional[str]) -> None:
        if not ok:
            self._print(f"Check failed: {path} - {reason}")

    def on_examine_file(self, path: str) -> None:
        self._print(f"Examining {path}.")


def _tuple_or_none(values: Optional[List[str]]) -> Optional[Tuple[str, ...]]:
    return tuple(values) if values else None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="checkin",
        description="Fix up or check changed files, including partially staged ones",
    )
    parser.add_argument("--directory", default=None, help="Directory to run in (default: cwd)")
    parser.add_argument(
        "--plugin",
        action="append",
        dest="plugins",
        help="Plugin name or module:Class specification. Can be provided multiple times.",
    )
    parser.add_argument(
        "--pattern",
        action="append",
        dest="patterns",
        help="Glob restricting the processed files. Can be provided multiple times.",
    )
    parser.add_argument("--staged", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument(
        "--bail",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fail instead of writing fixups",
    )
    parser.add_argument(
        "--check",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Only check files, never fix them",
    )
    parser.add_argument("--resolve-config", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument("-v", "--verbose", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument("--journal", default=None, help="Append a JSONL record of the run to this file")
    parser.add_argument("--json", action="store_true", help="Print the run result as JSON")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def report_result(result: RunResult, stream: TextIO) -> None:
    if result.success:
        print("Everything is awesome!", file=stream)
        return
    if FailReason.BAIL_ON_WRITE in result.errors:
        print("File had to be modified and check-in was set to bail mode.", file=stream)
    if FailReason.CHECK_FAILED in result.errors:
        print("Issues found in the above file(s).", file=stream)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    overrides = CliOverrides(
        bail=args.bail,
        check=args.check,
        pattern=_tuple_or_none(args.patterns),
        plugins=_tuple_or_none(args.plugins),
        resolve_config=args.resolve_config,
        staged=args.staged,
        verbose=args.verbose,
    )

    observer: RunObserver = ConsoleObserver(sys.stderr if args.json else sys.stdout)
    if args.journal:
        observer = JournalObserver(RunJournal(Path(args.journal)), observer)

    try:
        options = build_run_options(Path(args.directory) if args.directory else Path.cwd(), overrides)
        result = ChangeOrchestrator(options, observer=observer).run()
    except ExternalCommandFailure as exc:
        print(f"Unexpected error: {exc}", file=sys.stderr)
        if exc.stderr:
            print(exc.stderr.rstrip(), file=sys.stderr)
        return 1
    except (CheckInError, OSError) as exc:
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    else:
        report_result(result, sys.stdout)
    return 0 if result.success else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
