"""Git object-store access: change classification and index mutation."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Iterator, Mapping, Optional, Sequence, Tuple, Union

from ..errors import InvalidState, NotAVersionControlRepo
from .process import run_command

LOGGER = logging.getLogger(__name__)

# cspell: ignore ACMRTUB, cacheinfo
EMPTY_BLOB = "0" * 40
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
DIFF_FILTER = "--diff-filter=ACMRTUB"
METADATA_DIR = ".git"
REGULAR_FILE_MODES = ("100644", "100755")

CommandRunner = Callable[..., bytes]


def decode_content(data: bytes) -> str:
    """Decode file bytes so that undecodable bytes survive a round trip."""

    return data.decode("utf-8", errors="surrogateescape")


def encode_content(content: str) -> bytes:
    return content.encode("utf-8", errors="surrogateescape")


def find_root(start: Union[str, Path]) -> Optional[Path]:
    """Return the closest ancestor of ``start`` holding git metadata."""

    current = Path(start).resolve()
    while True:
        if (current / METADATA_DIR).exists():
            return current
        if current.parent == current:
            return None
        current = current.parent


@dataclass(frozen=True)
class ChangeRecord:
    """Index entry of a path that differs from the last commit."""

    path: str
    mode: str
    blob_id: str


@dataclass(frozen=True)
class ChangeSet:
    """Snapshot of staged and unstaged paths taken once per run."""

    staged: Mapping[str, ChangeRecord]
    unstaged: FrozenSet[str]
    worktree_modes: Mapping[str, str] = field(default_factory=dict)

    @property
    def staged_paths(self) -> Tuple[str, ...]:
        return tuple(self.staged)

    def is_regular_file(self, path: str) -> bool:
        """Whether both the index and the working tree hold ``path`` as a plain file.

        Symlinks and submodule gitlinks are never read or rewritten.
        """

        record = self.staged.get(path)
        if record is not None and record.mode not in REGULAR_FILE_MODES:
            return False
        return self.worktree_modes.get(path, REGULAR_FILE_MODES[0]) in REGULAR_FILE_MODES


@dataclass(frozen=True)
class _DiffEntry:
    old_mode: str
    new_mode: str
    old_id: str
    new_id: str
    kind: str
    path: str


def _is_null_object(object_id: str) -> bool:
    return object_id == EMPTY_BLOB


def parse_diff_index(output: bytes) -> Iterator[_DiffEntry]:
    """Parse ``git diff-index -z`` output.

    Each record is ``:oldMode newMode oldId newId kind`` followed by one path,
    or two paths for copies and renames (the destination is kept).
    """

    fields = decode_content(output).split("\0")
    index = 0
    while index < len(fields):
        header = fields[index]
        index += 1
        if not header:
            continue
        if not header.startswith(":"):
            raise InvalidState(f"Unexpected diff-index record: {header!r}")
        old_mode, new_mode, old_id, new_id, kind = header[1:].split()
        path = fields[index]
        index += 1
        if kind[:1] in ("C", "R"):
            path = fields[index]
            index += 1
        yield _DiffEntry(old_mode, new_mode, old_id, new_id, kind, path)


class GitRepository:
    """Object-store client for a single git working copy.

    This is the only component that mutates the index or the working tree.
    The change set is computed once and then treated as frozen.
    """

    def __init__(self, root: Path, runner: CommandRunner = run_command) -> None:
        self.root = Path(root)
        self._runner = runner
        self._changes: Optional[ChangeSet] = None
        self._index_lock = threading.Lock()

    @classmethod
    def open(cls, directory: Union[str, Path]) -> "GitRepository":
        root = find_root(directory)
        if root is None:
            raise NotAVersionControlRepo("Couldn't find git repository")
        LOGGER.debug("Using git repository at %s", root)
        return cls(root)

    # ------------------------------------------------------------------
    # Change classification
    # ------------------------------------------------------------------
    def read_changes(self) -> ChangeSet:
        if self._changes is None:
            self._changes = self._compute_changes()
        return self._changes

    def staged_changes(self) -> Mapping[str, ChangeRecord]:
        return self.read_changes().staged

    def unstaged_changes(self) -> FrozenSet[str]:
        return self.read_changes().unstaged

    def _compute_changes(self) -> ChangeSet:
        self._git("update-index", "-q", "--refresh", ok_returncodes=(0, 1))
        base = self._baseline()

        staged: Dict[str, ChangeRecord] = {}
        for entry in parse_diff_index(self._git("diff-index", "--cached", "-z", DIFF_FILTER, base)):
            staged[entry.path] = ChangeRecord(entry.path, entry.new_mode, entry.new_id)

        worktree_modes: Dict[str, str] = {
            entry.path: entry.new_mode
            for entry in parse_diff_index(self._git("diff-index", "-z", DIFF_FILTER, base))
            if _is_null_object(entry.new_id)
        }

        LOGGER.debug("%d staged and %d unstaged changes", len(staged), len(worktree_modes))
        return ChangeSet(
            staged=staged,
            unstaged=frozenset(worktree_modes),
            worktree_modes=worktree_modes,
        )

    def _baseline(self) -> str:
        head = self._git("rev-parse", "--verify", "--quiet", "HEAD", ok_returncodes=(0, 1))
        return "HEAD" if head.strip() else EMPTY_TREE

    # ------------------------------------------------------------------
    # Index access
    # ------------------------------------------------------------------
    def read_index_blob(self, path: str) -> str:
        record = self.staged_changes().get(self._relative(path))
        if record is None:
            raise InvalidState("Invalid action: reading unchanged file")
        return decode_content(self._git("cat-file", "blob", record.blob_id))

    def write_index_blob(self, path: str, content: str) -> None:
        relative_path = self._relative(path)
        record = self.staged_changes().get(relative_path)
        if record is None:
            raise InvalidState("Invalid action: writing to unchanged file")

        with self._index_lock:
            object_id = self._git(
                "hash-object",
                "-w",
                "--stdin",
                "--path",
                relative_path,
                input=encode_content(content),
            ).decode("ascii").strip()
            self._git(
                "update-index",
                "--cacheinfo",
                f"{record.mode},{object_id},{relative_path}",
            )
        LOGGER.debug("Rebound index entry %s to %s", relative_path, object_id)

    def stage_working_tree_file(self, path: str) -> None:
        with self._index_lock:
            self._git("add", "--", self._relative(path))

    # ------------------------------------------------------------------
    # Working tree access
    # ------------------------------------------------------------------
    def resolve(self, path: str) -> Path:
        return self.root / path

    def read_working_tree_file(self, path: str) -> str:
        return decode_content(self.resolve(path).read_bytes())

    def write_working_tree_file(self, path: str, content: str) -> None:
        self.resolve(path).write_bytes(encode_content(content))

    # ------------------------------------------------------------------
    def _relative(self, path: str) -> str:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate.relative_to(self.root).as_posix()
        return path

    def _git(self, *args: str, input: Optional[bytes] = None, ok_returncodes: Sequence[int] = (0,)) -> bytes:
        return self._runner(
            ["git", *args],
            cwd=self.root,
            input=input,
            ok_returncodes=ok_returncodes,
        )


__all__ = [
    "ChangeRecord",
    "ChangeSet",
    "EMPTY_BLOB",
    "GitRepository",
    "REGULAR_FILE_MODES",
    "decode_content",
    "encode_content",
    "find_root",
    "parse_diff_index",
]
