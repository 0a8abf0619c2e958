# gitwatch/lifecycle.py
from __future__ import annotations

import logging
import queue
import signal
import threading
from typing import Dict, Iterable, Optional

from gitwatch.helpers.slack_helper import notifier_from_config
from gitwatch.observability import AuditLog
from gitwatch.settings import WatchConfig
from gitwatch.termination import TerminationLatch, TerminationSignal
from gitwatch.watcher import RepoWatcher

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SignalListener:
    """
    Turns SIGINT/SIGTERM into an INTERRUPT completion of the latch.

    The handler only queues the signal number; a listener thread does the
    completion so nothing blocking runs inside the handler.
    """

    def __init__(self, latch: TerminationLatch, log: logging.Logger, signals: Iterable[int] = STOP_SIGNALS) -> None:
        self.latch = latch
        self.log = log
        self.signals = tuple(signals)
        self._queue: "queue.SimpleQueue[Optional[int]]" = queue.SimpleQueue()
        self._previous: Dict[int, object] = {}
        self._thread: Optional[threading.Thread] = None

    def _handler(self, signum, frame) -> None:
        self._queue.put(signum)

    def _listen(self) -> None:
        signum = self._queue.get()
        if signum is None:
            return
        self.log.info("received %s, stopping", signal.Signals(signum).name)
        self.latch.complete(TerminationSignal.interrupt())

    def start(self) -> None:
        for s in self.signals:
            self._previous[s] = signal.signal(s, self._handler)
        self._thread = threading.Thread(target=self._listen, name="gitwatch-signals", daemon=True)
        self._thread.start()

    def close(self) -> None:
        for s, prev in self._previous.items():
            signal.signal(s, prev)
        self._previous.clear()
        self._queue.put(None)


def build_watcher(config: WatchConfig, log: logging.Logger) -> RepoWatcher:
    return RepoWatcher(
        config,
        log,
        notifier=notifier_from_config(config.slack_webhook, config.slack_title, log),
        audit=AuditLog(config.audit_log),
    )


def run(
    config: WatchConfig,
    log: logging.Logger,
    watcher: Optional[RepoWatcher] = None,
    *,
    install_signals: bool = True,
    latch: Optional[TerminationLatch] = None,
) -> int:
    """
    Start the watcher thread and wait for the first terminal outcome, either
    an interrupt or whatever the watcher reports. Returns the exit code.
    """
    latch = latch or TerminationLatch()
    watcher = watcher or build_watcher(config, log)

    listener = SignalListener(latch, log) if install_signals else None
    if listener:
        listener.start()

    thread = threading.Thread(target=watcher.watch, args=(latch,), name="gitwatch-watcher", daemon=True)
    thread.start()
    # Handlers stay installed through the grace period so a second Ctrl-C is absorbed.
    try:
        try:
            outcome = latch.wait(1.0)
            while outcome is None:
                outcome = latch.wait(1.0)
        finally:
            watcher.stop()
        thread.join(config.shutdown_grace_seconds)
        if thread.is_alive():
            log.warning("watcher still busy after %.1fs, exiting anyway", config.shutdown_grace_seconds)
    finally:
        if listener:
            listener.close()

    if outcome.error is not None:
        log.error("%s", outcome.error)
        return outcome.exit_code
    log.info("shutting down (%s)", outcome.kind.value)
    return 0
