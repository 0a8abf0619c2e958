# gitwatch/vcs.py
"""
Thin layer over GitPython: clone, open the worktree, pull, and key auth.

Transport and authentication are left to the `git` and `ssh` binaries;
this module only hands them the URL, branch and key path.
"""
from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import git
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from gitwatch.errors import AuthError, CloneError, PullError, WorktreeError

REMOTE_NAME = "origin"


class StdoutProgress(git.RemoteProgress):
    """Echo one line per finished transfer stage (counting, receiving, ...) to stdout."""

    STAGES = {
        git.RemoteProgress.COUNTING: "counting objects",
        git.RemoteProgress.COMPRESSING: "compressing objects",
        git.RemoteProgress.WRITING: "writing objects",
        git.RemoteProgress.RECEIVING: "receiving objects",
        git.RemoteProgress.RESOLVING: "resolving deltas",
        git.RemoteProgress.FINDING_SOURCES: "finding sources",
        git.RemoteProgress.CHECKING_OUT: "checking out files",
    }

    def __init__(self, stream=None) -> None:
        super().__init__()
        self.stream = stream

    def update(self, op_code, cur_count, max_count=None, message=""):
        if not op_code & self.END:
            return
        stage = self.STAGES.get(op_code & self.OP_MASK, "progress")
        total = max_count if max_count else cur_count
        line = f"{stage}: {int(cur_count)}/{int(total)} {message or ''}".rstrip()
        out = self.stream or sys.stdout
        out.write(line + "\n")
        out.flush()


@dataclass(frozen=True)
class KeyAuth:
    """SSH private-key authentication, passed to git through GIT_SSH_COMMAND."""
    key_path: str

    def env(self) -> Dict[str, str]:
        ssh = f"ssh -i {shlex.quote(self.key_path)} -o IdentitiesOnly=yes"
        return {"GIT_SSH_COMMAND": ssh}


def _auth_env(auth: Optional[KeyAuth]) -> Dict[str, str]:
    return auth.env() if auth else {}


def load_key_auth(path: str) -> KeyAuth:
    """
    Check that the key file exists and is readable. Raises AuthError otherwise.
    """
    key_path = os.path.abspath(os.path.expanduser(path))
    if not os.path.isfile(key_path):
        raise AuthError(f"ssh key not found: {key_path}")
    try:
        with open(key_path, "rb") as f:
            head = f.read(64)
    except OSError as e:
        raise AuthError(f"cannot read ssh key {key_path}: {e}") from e
    if not head.strip():
        raise AuthError(f"ssh key is empty: {key_path}")
    return KeyAuth(key_path=key_path)


class PullStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True)
class PollOutcome:
    status: PullStatus
    before: str = ""
    after: str = ""
    error: Optional[Exception] = field(default=None, compare=False)

    @classmethod
    def up_to_date(cls, sha: str) -> "PollOutcome":
        return cls(PullStatus.UP_TO_DATE, before=sha, after=sha)

    @classmethod
    def updated(cls, before: str, after: str) -> "PollOutcome":
        return cls(PullStatus.UPDATED, before=before, after=after)

    @classmethod
    def failed(cls, error: Exception) -> "PollOutcome":
        return cls(PullStatus.FAILED, error=error)


def clone(
    url: str,
    directory: str,
    auth: Optional[KeyAuth],
    branch: str,
    progress: Optional[git.RemoteProgress] = None,
) -> git.Repo:
    """Clone a single branch of `url` into `directory`. Raises CloneError."""
    try:
        return git.Repo.clone_from(
            url,
            directory,
            progress=progress or StdoutProgress(),
            env=_auth_env(auth) or None,
            branch=branch,
            single_branch=True,
        )
    except (GitCommandError, NoSuchPathError) as e:
        raise CloneError(f"clone of {url} ({branch}) into {directory} failed: {e}") from e


def open_worktree(repo: git.Repo) -> git.Repo:
    """
    Re-open the working copy behind `repo`. The caller closes the returned Repo.
    Raises WorktreeError if the directory is gone or no longer a git checkout.
    """
    path = repo.working_tree_dir
    if not path:
        raise WorktreeError(f"repository at {repo.git_dir} has no working tree")
    try:
        return git.Repo(path)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise WorktreeError(f"cannot open worktree at {path}: {e}") from e


def pull(
    worktree: git.Repo,
    auth: Optional[KeyAuth],
    branch: str,
    progress: Optional[git.RemoteProgress] = None,
) -> PollOutcome:
    """
    Fast-forward the worktree from origin/<branch>.
    Never raises: failures come back as PollOutcome.failed(PullError).
    """
    try:
        before = worktree.head.commit.hexsha
        remote = worktree.remote(REMOTE_NAME)
        with worktree.git.custom_environment(**_auth_env(auth)):
            remote.pull(branch, progress=progress or StdoutProgress(), ff_only=True)
        after = worktree.head.commit.hexsha
    except (GitCommandError, ValueError) as e:
        return PollOutcome.failed(PullError(f"pull of {branch} failed: {e}"))
    if before == after:
        return PollOutcome.up_to_date(after)
    return PollOutcome.updated(before, after)
