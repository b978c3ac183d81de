"""Thin wrapper around :mod:`subprocess` used for git and formatter calls."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from ..errors import ExternalCommandFailure

LOGGER = logging.getLogger(__name__)


def run_command(
    command: Sequence[str],
    *,
    cwd: Path,
    input: Optional[bytes] = None,
    ok_returncodes: Sequence[int] = (0,),
) -> bytes:
    """Run ``command`` in ``cwd`` and return its captured stdout.

    ``input`` is piped to stdin when given; otherwise stdin is closed. Any
    return code outside ``ok_returncodes`` raises
    :class:`ExternalCommandFailure` carrying the captured stderr.
    """

    name = command[0]
    LOGGER.debug("Running %s in %s", " ".join(command), cwd)
    try:
        completed = subprocess.run(
            list(command),
            cwd=str(cwd),
            input=input,
            stdin=None if input is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ExternalCommandFailure(
            f"Command {name} not found",
            str(exc),
            command=command,
        ) from exc

    returncode = completed.returncode
    if returncode not in ok_returncodes:
        if returncode < 0:
            message = f"Command {name} exited with signal {-returncode}"
        else:
            message = f"Command {name} exited with code {returncode}"
        raise ExternalCommandFailure(
            message,
            completed.stderr.decode("utf-8", errors="replace"),
            returncode=returncode,
            command=command,
        )
    return completed.stdout


__all__ = ["run_command"]
