# gitwatch/watcher.py
from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import threading
from types import ModuleType
from typing import Callable, Optional, Sequence

import git

from gitwatch import vcs as default_vcs
from gitwatch.errors import GitWatchError, WorkdirError
from gitwatch.helpers.slack_helper import SlackNotifier
from gitwatch.observability import AuditLog
from gitwatch.runner import CommandResult, run_command
from gitwatch.settings import WatchConfig
from gitwatch.termination import TerminationLatch, TerminationSignal
from gitwatch.vcs import KeyAuth, PullStatus

Runner = Callable[[str, Sequence[str], logging.Logger], CommandResult]

DIR_MODE = 0o755


class RepoWatcher:
    """
    Clone once, run the command, then poll: pull, run the command if the pull
    brought new commits, sleep, repeat. Every error from git ends the watch.

    The watcher reports how it ended through a TerminationLatch. stop() wakes
    it from the inter-poll sleep; no pull or command starts after a stop.
    """

    def __init__(
        self,
        config: WatchConfig,
        log: logging.Logger,
        *,
        runner: Runner = run_command,
        notifier: Optional[SlackNotifier] = None,
        audit: Optional[AuditLog] = None,
        vcs: ModuleType = default_vcs,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        self.config = config
        self.log = log
        self.runner = runner
        self.notifier = notifier
        self.audit = audit or AuditLog()
        self.vcs = vcs
        self._stop = stop_event or threading.Event()

        self.directory: Optional[str] = None
        self.repo: Optional[git.Repo] = None
        self.invocations = 0
        self.polls = 0

    # ---------- control ----------

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def watch(self, latch: TerminationLatch) -> None:
        """Run until a fatal error or stop(); complete `latch` exactly once."""
        try:
            self._watch()
        except GitWatchError as e:
            latch.complete(TerminationSignal.fatal(e))
        except Exception as e:
            self.log.exception("unexpected error in watcher")
            latch.complete(TerminationSignal.fatal(e))
        else:
            latch.complete(TerminationSignal.clean())

    # ---------- setup ----------

    def _resolve_dir(self, stack: contextlib.ExitStack) -> str:
        if self.config.dir:
            return os.path.abspath(os.path.expanduser(self.config.dir))
        try:
            return stack.enter_context(tempfile.TemporaryDirectory(prefix="gitwatch-"))
        except OSError as e:
            raise WorkdirError(f"cannot create temporary directory: {e}") from e

    def _ensure_dir(self, directory: str) -> None:
        if os.path.isdir(directory):
            return
        if os.path.exists(directory):
            raise WorkdirError(f"{directory} exists and is not a directory")
        self.log.info("directory not found, creating it now: %s", directory)
        try:
            os.makedirs(directory, mode=DIR_MODE, exist_ok=True)
        except OSError as e:
            raise WorkdirError(f"cannot create {directory}: {e}") from e

    def _clone(self, directory: str, auth: Optional[KeyAuth]) -> git.Repo:
        cfg = self.config
        self.log.info("cloning %s (%s) to %s", cfg.repo, cfg.branch, directory)
        params = {"repo": cfg.repo, "branch": cfg.branch, "dir": directory}
        try:
            repo = self.vcs.clone(cfg.repo, directory, auth, cfg.branch)
        except GitWatchError as e:
            self.audit.record(action="clone", status="error", params=params, message=str(e))
            raise
        self.audit.record(action="clone", status="ok", params=params)
        return repo

    # ---------- loop ----------

    def _watch(self) -> None:
        cfg = self.config
        with contextlib.ExitStack() as stack:
            directory = self._resolve_dir(stack)
            self._ensure_dir(directory)
            self.directory = directory

            auth = self.vcs.load_key_auth(cfg.key) if cfg.key else None
            repo = self._clone(directory, auth)
            stack.callback(repo.close)
            self.repo = repo

            self._invoke()

            while not self.stopped:
                self._poll_once(repo, auth)
                self.log.debug("waiting for %d seconds", cfg.interval_seconds)
                if self._stop.wait(cfg.interval_seconds):
                    break
            self.log.info("watcher stopped")

    def _poll_once(self, repo: git.Repo, auth: Optional[KeyAuth]) -> None:
        cfg = self.config
        self.log.debug("pulling %s", cfg.repo)
        worktree = self.vcs.open_worktree(repo)
        try:
            outcome = self.vcs.pull(worktree, auth, cfg.branch)
        finally:
            worktree.close()
        self.polls += 1

        if outcome.status is PullStatus.UP_TO_DATE:
            self.log.debug("repo already up to date, nothing to do")
            return
        if outcome.status is PullStatus.UPDATED:
            self.log.info("fetched new updates: %s..%s", outcome.before[:8], outcome.after[:8])
            self.audit.record(
                action="pull", status="ok",
                params={"before": outcome.before, "after": outcome.after},
            )
            self._invoke()
            return
        self.audit.record(action="pull", status="error", message=str(outcome.error))
        raise outcome.error

    def _invoke(self) -> Optional[CommandResult]:
        cfg = self.config
        if self.stopped:
            self.log.debug("stop requested, not running command")
            return None

        params = {"command": cfg.command_line}
        self.audit.record(action="command", status="start", params=params)
        result = self.runner(cfg.cmd, cfg.args, self.log)
        self.invocations += 1
        self.audit.record(
            action="command",
            status="ok" if result.ok else "error",
            params={**params, "returncode": result.returncode},
        )

        if self.notifier is not None:
            sent = self.notifier.notify(result)
            self.audit.record(action="notify", status="ok" if sent else "error")
        return result
