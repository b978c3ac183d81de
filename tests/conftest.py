"""Shared fixtures: throwaway git repositories."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

GIT = shutil.which("git")


class GitFixture:
    """Small driver for a git repository living in ``tmp_path``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def git(self, *args: str) -> str:
        completed = subprocess.run(
            ["git", *args],
            cwd=self.root,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
        )
        return completed.stdout.decode("utf-8")

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
        return path

    def read(self, relative: str) -> str:
        return (self.root / relative).read_bytes().decode("utf-8")

    def stage(self, *relative: str) -> None:
        self.git("add", "--", *relative)

    def commit(self, message: str = "commit") -> None:
        self.git("add", "-A")
        self.git("commit", "-q", "-m", message)

    def index_content(self, relative: str) -> str:
        return self.git("show", f":{relative}")


@pytest.fixture
def repo(tmp_path: Path) -> GitFixture:
    if GIT is None:
        pytest.skip("git is not installed")
    root = tmp_path / "repo"
    root.mkdir()
    fixture = GitFixture(root)
    fixture.git("init", "-q")
    fixture.git("config", "user.name", "Test User")
    fixture.git("config", "user.email", "test@example.com")
    fixture.git("config", "commit.gpgSign", "false")
    fixture.git("config", "core.autocrlf", "false")
    return fixture


@pytest.fixture
def committed_repo(repo: GitFixture) -> GitFixture:
    """Repository with one commit so that ``HEAD`` resolves."""

    repo.write("README", "readme\n")
    repo.commit("initial")
    return repo
