"""Per-run orchestration: change set, plugin pipeline and write-back."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from ..pipeline.jsonl import RunJournal
from ..pipeline.match import compile_patterns
from ..pipeline.plugins import PluginPipeline
from ..plugins.base_plugin import PluginOptions
from .plugin_manager import PluginManager
from .scm import GitRepository

LOGGER = logging.getLogger(__name__)


class FailReason(str, Enum):
    BAIL_ON_WRITE = "BAIL_ON_WRITE"
    CHECK_FAILED = "CHECK_FAILED"


@dataclass(frozen=True)
class RunOptions:
    """Everything a run needs; nothing is read from the process environment."""

    directory: Path = field(default_factory=Path.cwd)
    bail: bool = False
    check: bool = False
    pattern: Tuple[str, ...] = ()
    plugins: Optional[Tuple[str, ...]] = None
    resolve_config: bool = True
    staged: bool = False
    verbose: bool = False


@dataclass(frozen=True)
class RunResult:
    errors: FrozenSet[FailReason] = frozenset()

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, object]:
        return {
            "success": self.success,
            "errors": sorted(reason.value for reason in self.errors),
        }


@dataclass(frozen=True)
class FileTask:
    path: str
    resolved_path: Path
    use_index_as_source: bool
    original_content: str


class RunObserver:
    """Per-file notifications; every hook is a no-op by default."""

    def on_found_changed_files(self, paths: Sequence[str]) -> None:
        pass

    def on_examine_file(self, path: str) -> None:
        pass

    def on_check_file(self, path: str, ok: bool, reason: Optional[str]) -> None:
        pass

    def on_write_file(self, path: str) -> None:
        pass

    def on_partially_staged_file(self, path: str) -> None:
        pass


class JournalObserver(RunObserver):
    """Record every notification in a :class:`RunJournal`, then forward it."""

    def __init__(self, journal: RunJournal, inner: Optional[RunObserver] = None) -> None:
        self.journal = journal
        self.inner = inner or RunObserver()

    def on_found_changed_files(self, paths: Sequence[str]) -> None:
        self.journal.record("found_changed_files", count=len(paths), paths=list(paths))
        self.inner.on_found_changed_files(paths)

    def on_examine_file(self, path: str) -> None:
        self.journal.record("examine", path)
        self.inner.on_examine_file(path)

    def on_check_file(self, path: str, ok: bool, reason: Optional[str]) -> None:
        self.journal.record("check", path, ok=ok, reason=reason)
        self.inner.on_check_file(path, ok, reason)

    def on_write_file(self, path: str) -> None:
        self.journal.record("write", path)
        self.inner.on_write_file(path)

    def on_partially_staged_file(self, path: str) -> None:
        self.journal.record("partially_staged_write", path)
        self.inner.on_partially_staged_file(path)


class ChangeOrchestrator:
    """Run the plugin pipeline over every changed file of a repository.

    In staged mode the staged paths are processed; those that also carry
    unstaged edits are read from and written back to the index, leaving the
    working tree untouched. Otherwise the paths with unstaged edits are
    processed straight from the working tree.
    """

    def __init__(
        self,
        options: RunOptions,
        *,
        observer: Optional[RunObserver] = None,
        plugin_manager: Optional[PluginManager] = None,
        repository_factory: Callable[[Path], GitRepository] = GitRepository.open,
    ) -> None:
        self.options = options
        self.observer = observer or RunObserver()
        self.plugin_manager = plugin_manager or PluginManager()
        self._repository_factory = repository_factory

    def run(self) -> RunResult:
        options = self.options
        directory = Path(options.directory).resolve()
        repository = self._repository_factory(directory)
        changes = repository.read_changes()

        if options.staged:
            changed_files: List[str] = list(changes.staged_paths)
            index_sources: FrozenSet[str] = changes.unstaged
        else:
            changed_files = sorted(changes.unstaged)
            index_sources = frozenset()

        regular_files = []
        for path in changed_files:
            if changes.is_regular_file(path):
                regular_files.append(path)
            else:
                LOGGER.debug("Skipping %s: not a regular file", path)
        changed_files = regular_files

        if options.pattern:
            matcher = compile_patterns(options.pattern)
            changed_files = [path for path in changed_files if matcher(path)]

        self.observer.on_found_changed_files(tuple(changed_files))
        LOGGER.info("Found %d changed file(s)", len(changed_files))

        if not changed_files:
            return RunResult()

        names = options.plugins
        if names is None:
            names = tuple(self.plugin_manager.detect_available_builtins())
        pipeline = self.plugin_manager.build_pipeline(names, repository.root, directory)
        plugin_options = PluginOptions(check=options.check, resolve_config=options.resolve_config)

        fail_reasons: Set[FailReason] = set()
        for path in changed_files:
            task = self._create_task(repository, path, path in index_sources)
            self._process(repository, pipeline, plugin_options, task, fail_reasons)

        return RunResult(errors=frozenset(fail_reasons))

    # ------------------------------------------------------------------
    def _create_task(self, repository: GitRepository, path: str, use_index: bool) -> FileTask:
        if use_index:
            content = repository.read_index_blob(path)
        else:
            content = repository.read_working_tree_file(path)
        return FileTask(
            path=path,
            resolved_path=repository.resolve(path),
            use_index_as_source=use_index,
            original_content=content,
        )

    def _process(
        self,
        repository: GitRepository,
        pipeline: PluginPipeline,
        plugin_options: PluginOptions,
        task: FileTask,
        fail_reasons: Set[FailReason],
    ) -> None:
        LOGGER.debug(
            "Processing %s from the %s",
            task.path,
            "index" if task.use_index_as_source else "working tree",
        )
        result = pipeline.run(task.resolved_path, task.original_content, plugin_options)

        if result.examined and self.options.verbose:
            self.observer.on_examine_file(task.path)

        for outcome in result.checks:
            self.observer.on_check_file(task.path, outcome.ok, outcome.reason)
            if not outcome.ok:
                fail_reasons.add(FailReason.CHECK_FAILED)

        if result.new_content is not None:
            self._write(repository, task, result.new_content, fail_reasons)

    def _write(
        self,
        repository: GitRepository,
        task: FileTask,
        new_content: str,
        fail_reasons: Set[FailReason],
    ) -> None:
        if new_content == task.original_content:
            return

        self.observer.on_write_file(task.path)
        if self.options.bail:
            LOGGER.info("Not fixing %s: bail mode is active", task.path)
            fail_reasons.add(FailReason.BAIL_ON_WRITE)
        elif task.use_index_as_source:
            LOGGER.info("Fixing up partially staged %s in the index", task.path)
            self.observer.on_partially_staged_file(task.path)
            repository.write_index_blob(task.path, new_content)
        else:
            LOGGER.info("Fixing up %s", task.path)
            repository.write_working_tree_file(task.path, new_content)
            if self.options.staged:
                repository.stage_working_tree_file(task.path)


def run_check_in(options: RunOptions, observer: Optional[RunObserver] = None) -> RunResult:
    return ChangeOrchestrator(options, observer=observer).run()


__all__ = [
    "ChangeOrchestrator",
    "FailReason",
    "FileTask",
    "JournalObserver",
    "RunObserver",
    "RunOptions",
    "RunResult",
    "run_check_in",
]
