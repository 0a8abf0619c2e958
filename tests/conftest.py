from __future__ import annotations

import logging
import os
from pathlib import Path

import git
import pytest

ACTOR = git.Actor("gitwatch tests", "tests@example.com")


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    """No stray GITWATCH_* variables or .env files leak into a test."""
    for k in list(os.environ):
        if k.startswith("GITWATCH_"):
            monkeypatch.delenv(k, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def log():
    lg = logging.getLogger("gitwatch_tests")
    lg.setLevel(logging.DEBUG)
    return lg


class Upstream:
    """A bare 'remote' repo plus a scratch clone used to push new commits to it."""

    def __init__(self, root: Path, branch: str = "master") -> None:
        self.branch = branch
        self.bare_path = root / "remote.git"
        git.Repo.init(self.bare_path, bare=True)

        self.work = git.Repo.init(root / "upstream-work")
        self.commit("README.md", "hello\n", "initial")
        self.work.git.branch("-M", branch)
        self.work.create_remote("origin", str(self.bare_path))
        self.work.git.push("origin", branch)

    @property
    def url(self) -> str:
        return str(self.bare_path)

    @property
    def head(self) -> str:
        return self.work.head.commit.hexsha

    def commit(self, name: str, content: str, message: str) -> str:
        path = Path(self.work.working_tree_dir) / name
        path.write_text(content, encoding="utf-8")
        self.work.index.add([name])
        return self.work.index.commit(message, author=ACTOR, committer=ACTOR).hexsha

    def push_commit(self, name: str = "CHANGELOG.md", content: str = "change\n", message: str = "update") -> str:
        sha = self.commit(name, content, message)
        self.work.git.push("origin", self.branch)
        return sha


@pytest.fixture
def upstream(tmp_path):
    up = Upstream(tmp_path / "upstream")
    yield up
    up.work.close()
