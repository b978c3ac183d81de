"""End-to-end tests of the change orchestrator against real git repositories."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pytest

from checkin.core.orchestrator import ChangeOrchestrator, FailReason, RunObserver, RunOptions, RunResult
from checkin.core.plugin_manager import PluginManager
from checkin.errors import ExternalCommandFailure

from .conftest import GitFixture

APPEND_SPACE = "tests.dummy_plugins:AppendSpacePlugin"
FAILING_CHECK = "tests.dummy_plugins:FailingCheckPlugin"
PASSING_CHECK = "tests.dummy_plugins:PassingCheckPlugin"


class RecordingObserver(RunObserver):
    def __init__(self) -> None:
        self.found: List[Tuple[str, ...]] = []
        self.examined: List[str] = []
        self.checks: List[Tuple[str, bool, Optional[str]]] = []
        self.writes: List[str] = []
        self.partial: List[str] = []

    def on_found_changed_files(self, paths: Sequence[str]) -> None:
        self.found.append(tuple(paths))

    def on_examine_file(self, path: str) -> None:
        self.examined.append(path)

    def on_check_file(self, path: str, ok: bool, reason: Optional[str]) -> None:
        self.checks.append((path, ok, reason))

    def on_write_file(self, path: str) -> None:
        self.writes.append(path)

    def on_partially_staged_file(self, path: str) -> None:
        self.partial.append(path)


class ExplodingPluginManager(PluginManager):
    def build_pipeline(self, names, root_directory, directory):  # type: ignore[override]
        raise AssertionError("plugins must not be resolved")


def _run(
    repo: GitFixture,
    *plugins: str,
    observer: Optional[RunObserver] = None,
    **options: object,
) -> RunResult:
    run_options = RunOptions(directory=repo.root, plugins=plugins, **options)
    return ChangeOrchestrator(run_options, observer=observer).run()


def _make_partially_staged(repo: GitFixture) -> None:
    repo.write("a.txt", "X")
    repo.stage("a.txt")
    repo.write("a.txt", "XY")


def test_partially_staged_fixup_only_touches_index(committed_repo: GitFixture) -> None:
    _make_partially_staged(committed_repo)
    observer = RecordingObserver()

    result = _run(committed_repo, APPEND_SPACE, observer=observer, staged=True)

    assert result == RunResult()
    assert result.success is True
    assert committed_repo.index_content("a.txt") == "X "
    assert committed_repo.read("a.txt") == "XY"
    assert observer.writes == ["a.txt"]
    assert observer.partial == ["a.txt"]


def test_fully_staged_file_is_fixed_and_restaged(committed_repo: GitFixture) -> None:
    committed_repo.write("a.txt", "X")
    committed_repo.stage("a.txt")
    observer = RecordingObserver()

    result = _run(committed_repo, APPEND_SPACE, observer=observer, staged=True)

    assert result.success
    assert committed_repo.read("a.txt") == "X "
    assert committed_repo.index_content("a.txt") == "X "
    assert observer.partial == []


def test_unstaged_mode_writes_working_tree_only(committed_repo: GitFixture) -> None:
    committed_repo.write("README", "edited")

    result = _run(committed_repo, APPEND_SPACE)

    assert result.success
    assert committed_repo.read("README") == "edited "
    assert committed_repo.index_content("README") == "readme\n"


def test_unstaged_mode_ignores_purely_staged_files(committed_repo: GitFixture) -> None:
    committed_repo.write("a.txt", "X")
    committed_repo.stage("a.txt")
    observer = RecordingObserver()

    result = _run(committed_repo, APPEND_SPACE, observer=observer)

    assert result.success
    assert observer.found == [()]
    assert committed_repo.read("a.txt") == "X"


def test_bail_mode_mutates_nothing(committed_repo: GitFixture) -> None:
    _make_partially_staged(committed_repo)
    committed_repo.write("b.txt", "B")
    committed_repo.stage("b.txt")
    observer = RecordingObserver()

    result = _run(committed_repo, APPEND_SPACE, observer=observer, staged=True, bail=True)

    assert result.success is False
    assert result.errors == frozenset({FailReason.BAIL_ON_WRITE})
    assert committed_repo.index_content("a.txt") == "X"
    assert committed_repo.read("a.txt") == "XY"
    assert committed_repo.index_content("b.txt") == "B"
    assert committed_repo.read("b.txt") == "B"
    assert sorted(observer.writes) == ["a.txt", "b.txt"]
    assert observer.partial == []


def test_check_failures_are_reported_once_per_run(committed_repo: GitFixture) -> None:
    committed_repo.write("a.txt", "a")
    committed_repo.write("b.txt", "b")
    committed_repo.stage("a.txt", "b.txt")
    observer = RecordingObserver()

    result = _run(committed_repo, FAILING_CHECK, PASSING_CHECK, observer=observer, staged=True)

    assert result.errors == frozenset({FailReason.CHECK_FAILED})
    assert result.to_dict() == {"success": False, "errors": ["CHECK_FAILED"]}
    assert observer.checks == [
        ("a.txt", False, "x (failing-check)"),
        ("b.txt", False, "x (failing-check)"),
    ]


def test_empty_change_set_short_circuits(committed_repo: GitFixture) -> None:
    observer = RecordingObserver()
    options = RunOptions(directory=committed_repo.root, staged=True)

    result = ChangeOrchestrator(
        options,
        observer=observer,
        plugin_manager=ExplodingPluginManager(),
    ).run()

    assert result.to_dict() == {"success": True, "errors": []}
    assert observer.found == [()]


def test_pattern_filter_limits_processed_files(committed_repo: GitFixture) -> None:
    committed_repo.write("a.md", "A")
    committed_repo.write("b.txt", "B")
    committed_repo.stage("a.md", "b.txt")
    observer = RecordingObserver()

    result = _run(committed_repo, APPEND_SPACE, observer=observer, staged=True, pattern=("*.md",))

    assert result.success
    assert observer.found == [("a.md",)]
    assert committed_repo.read("a.md") == "A "
    assert committed_repo.read("b.txt") == "B"


def test_second_run_is_idempotent(committed_repo: GitFixture) -> None:
    committed_repo.write("README", "edited")
    _run(committed_repo, APPEND_SPACE)
    observer = RecordingObserver()

    result = _run(committed_repo, APPEND_SPACE, observer=observer)

    assert result.success
    assert observer.found == [("README",)]
    assert observer.writes == []
    assert committed_repo.read("README") == "edited "


def test_unchanged_write_is_free(committed_repo: GitFixture) -> None:
    committed_repo.write("README", "edited")
    observer = RecordingObserver()

    result = _run(
        committed_repo,
        "tests.dummy_plugins:UnchangedWritePlugin",
        observer=observer,
        bail=True,
    )

    assert result.success
    assert observer.writes == []


@pytest.mark.parametrize("verbose", [True, False])
def test_examined_files_reported_only_when_verbose(committed_repo: GitFixture, verbose: bool) -> None:
    committed_repo.write("README", "edited")
    observer = RecordingObserver()

    _run(committed_repo, APPEND_SPACE, PASSING_CHECK, observer=observer, verbose=verbose)

    assert observer.examined == (["README"] if verbose else [])


def test_plugins_run_in_configured_order_on_index_content(committed_repo: GitFixture) -> None:
    committed_repo.write("a.txt", "x")
    committed_repo.stage("a.txt")
    committed_repo.write("a.txt", "x plus unstaged")

    result = _run(
        committed_repo,
        "tests.dummy_plugins:UppercasePlugin",
        APPEND_SPACE,
        staged=True,
    )

    assert result.success
    assert committed_repo.index_content("a.txt") == "X "
    assert committed_repo.read("a.txt") == "x plus unstaged"


def test_builtin_whitespace_plugin_on_partial_stage(committed_repo: GitFixture) -> None:
    committed_repo.write("notes.md", "line   \nnext\t")
    committed_repo.stage("notes.md")
    committed_repo.write("notes.md", "line   \nnext\t\nmore work  ")

    result = _run(committed_repo, "whitespace", staged=True)

    assert result.success
    assert committed_repo.index_content("notes.md") == "line\nnext\n"
    assert committed_repo.read("notes.md") == "line   \nnext\t\nmore work  "


def test_external_command_failure_aborts_run(committed_repo: GitFixture) -> None:
    committed_repo.write("a.txt", "a")
    committed_repo.write("b.txt", "b")
    committed_repo.stage("a.txt", "b.txt")

    with pytest.raises(ExternalCommandFailure) as excinfo:
        _run(committed_repo, "tests.dummy_plugins:CrashingCommandPlugin", staged=True)

    assert excinfo.value.stderr == "boom"


def test_run_from_subdirectory_uses_repository_paths(committed_repo: GitFixture) -> None:
    committed_repo.write("pkg/mod.txt", "X")
    committed_repo.stage("pkg/mod.txt")
    subdirectory = committed_repo.root / "pkg"

    options = RunOptions(directory=subdirectory, plugins=(APPEND_SPACE,), staged=True)
    result = ChangeOrchestrator(options).run()

    assert result.success
    assert committed_repo.index_content("pkg/mod.txt") == "X "


def test_staged_symlink_target_is_left_alone(committed_repo: GitFixture) -> None:
    outside = committed_repo.root.parent / "outside.txt"
    outside.write_text("secret  ", encoding="utf-8")
    (committed_repo.root / "link").symlink_to("../outside.txt")
    committed_repo.write("a.txt", "a  ")
    committed_repo.stage("link", "a.txt")
    observer = RecordingObserver()

    result = _run(committed_repo, "whitespace", observer=observer, staged=True)

    assert result.success
    assert observer.found == [("a.txt",)]
    assert outside.read_text(encoding="utf-8") == "secret  "
    assert committed_repo.index_content("a.txt") == "a\n"
    assert committed_repo.git("ls-files", "-s", "link").startswith("120000 ")


def test_unstaged_symlink_is_skipped(committed_repo: GitFixture) -> None:
    outside = committed_repo.root.parent / "outside.txt"
    outside.write_text("secret  ", encoding="utf-8")
    link = committed_repo.root / "link"
    link.symlink_to("README")
    committed_repo.commit("add link")
    link.unlink()
    link.symlink_to("../outside.txt")
    committed_repo.write("README", "edited  ")
    observer = RecordingObserver()

    result = _run(committed_repo, "whitespace", observer=observer)

    assert result.success
    assert observer.found == [("README",)]
    assert outside.read_text(encoding="utf-8") == "secret  "
    assert committed_repo.read("README") == "edited\n"


def test_staged_submodule_bump_is_skipped(committed_repo: GitFixture) -> None:
    head = committed_repo.git("rev-parse", "HEAD").strip()
    (committed_repo.root / "sub").mkdir()
    committed_repo.git("update-index", "--add", "--cacheinfo", f"160000,{head},sub")
    committed_repo.write("a.txt", "a  ")
    committed_repo.stage("a.txt")
    observer = RecordingObserver()

    result = _run(committed_repo, "whitespace", observer=observer, staged=True)

    assert result.success
    assert observer.found == [("a.txt",)]
    assert committed_repo.index_content("a.txt") == "a\n"
    assert committed_repo.git("ls-files", "-s", "sub").startswith(f"160000 {head} ")
