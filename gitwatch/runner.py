# gitwatch/runner.py
from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    output: str
    returncode: Optional[int] = None  # None when the process never started


def run_command(cmd: str, args: Sequence[str], log: logging.Logger, cwd: Optional[str] = None) -> CommandResult:
    """
    Run `cmd args...`, wait for it, and return its combined stdout/stderr.

    Never raises: a missing executable or a non-zero exit is logged and
    reported through CommandResult.ok. The output is always echoed to stdout.
    """
    argv: List[str] = [cmd, *args]
    log.info("running command: %s", " ".join(shlex.quote(a) for a in argv))

    returncode: Optional[int] = None
    try:
        proc = subprocess.run(
            argv,
            cwd=cwd,
            text=True,
            encoding="utf-8",
            errors="replace",
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        out = proc.stdout or ""
        returncode = proc.returncode
    except OSError as e:
        out = f"{e}\n"
        log.error("error while running command")
        log.error("%s", e)
    else:
        if returncode != 0:
            log.error("error while running command")
            log.error("command exited with status %d", returncode)
        else:
            log.info("success")

    if out:
        sys.stdout.write(out)
        sys.stdout.flush()
    return CommandResult(ok=returncode == 0, output=out, returncode=returncode)
