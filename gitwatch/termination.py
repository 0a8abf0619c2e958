# gitwatch/termination.py
from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TerminationKind(str, Enum):
    INTERRUPT = "interrupt"
    FATAL = "fatal"
    CLEAN = "clean"


@dataclass(frozen=True)
class TerminationSignal:
    kind: TerminationKind
    error: Optional[BaseException] = None

    @classmethod
    def interrupt(cls, error: Optional[BaseException] = None) -> "TerminationSignal":
        return cls(TerminationKind.INTERRUPT, error)

    @classmethod
    def fatal(cls, error: BaseException) -> "TerminationSignal":
        return cls(TerminationKind.FATAL, error)

    @classmethod
    def clean(cls) -> "TerminationSignal":
        return cls(TerminationKind.CLEAN)

    @property
    def exit_code(self) -> int:
        return 1 if self.error is not None else 0


class TerminationLatch:
    """
    Single-slot completion shared by the signal handlers and the watcher.
    The first complete() wins; later values are discarded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._value: Optional[TerminationSignal] = None

    def complete(self, signal: TerminationSignal) -> bool:
        with self._lock:
            if self._value is not None:
                return False
            self._value = signal
        self._done.set()
        return True

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def value(self) -> Optional[TerminationSignal]:
        return self._value

    def wait(self, timeout: Optional[float] = None) -> Optional[TerminationSignal]:
        self._done.wait(timeout)
        return self._value
