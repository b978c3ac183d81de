"""JSONL run journal with deterministic size-based rotation."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

DEFAULT_MAX_BYTES = 75 * 1024


def _default_clock() -> str:
    return datetime.now(timezone.utc).isoformat()


def newest_lines_within(lines: Sequence[str], max_bytes: int) -> List[str]:
    """Return the longest suffix of ``lines`` whose newline-terminated size fits ``max_bytes``."""

    budget = max_bytes
    start = len(lines)
    while start > 0:
        size = len(lines[start - 1].encode("utf-8")) + 1
        if size > budget:
            break
        budget -= size
        start -= 1
    return list(lines[start:])


class RunJournal:
    """Append-only record of what a run did to each file.

    When the file grows past ``max_bytes`` only the newest lines that fit are
    kept.
    """

    def __init__(
        self,
        log_path: Path,
        max_bytes: int = DEFAULT_MAX_BYTES,
        clock: Optional[Callable[[], str]] = None,
    ) -> None:
        self.log_path = Path(log_path)
        self.max_bytes = max_bytes
        self._clock = clock or _default_clock

    def record(self, event: str, path: Optional[str] = None, **fields: object) -> None:
        entry: Dict[str, object] = {"event": event, "timestamp": self._clock()}
        if path is not None:
            entry["path"] = path
        entry.update(fields)
        self.append(entry)

    def append(self, record: Dict[str, object]) -> None:
        line = json.dumps(record, sort_keys=True)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with self.log_path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
        self._rotate_if_needed()

    def read(self) -> List[Dict[str, object]]:
        return [json.loads(line) for line in self._lines()]

    def _lines(self) -> List[str]:
        if not self.log_path.exists():
            return []
        return [line for line in self.log_path.read_text("utf-8").splitlines() if line]

    def _rotate_if_needed(self) -> None:
        if self.log_path.stat().st_size <= self.max_bytes:
            return
        kept = newest_lines_within(self._lines(), self.max_bytes)
        tmp_path = self.log_path.with_suffix(".tmp")
        tmp_path.write_text("".join(line + "\n" for line in kept), encoding="utf-8")
        os.replace(tmp_path, self.log_path)


__all__ = ["RunJournal", "newest_lines_within"]
