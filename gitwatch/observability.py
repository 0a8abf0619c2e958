# gitwatch/observability.py
from __future__ import annotations
import json
import logging
import os
import sys
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

LOGGER_NAME = "gitwatch"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_logger(verbose: bool = False, stream=None) -> logging.Logger:
    """
    Construct the process logger and return it. Callers pass the returned
    handle down explicitly; calling this again replaces the handler so the
    level and stream always reflect the latest call.
    """
    log = logging.getLogger(LOGGER_NAME)
    for h in list(log.handlers):
        log.removeHandler(h)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if verbose else logging.INFO)
    log.propagate = False
    return log


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """
    Append-only JSON-lines record of what the watcher did.
    A falsy path disables it: record() becomes a no-op and list_events() is empty.
    """

    def __init__(self, path: Optional[str] = None, run_id: Optional[str] = None) -> None:
        self.path = path or ""
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self._lock = threading.Lock()
        if self.path and os.path.dirname(self.path):
            os.makedirs(os.path.dirname(self.path), exist_ok=True)

    @property
    def enabled(self) -> bool:
        return bool(self.path)

    def record(
        self,
        *,
        action: str,
        status: str,
        params: Dict[str, Any] | None = None,
        message: str | None = None,
    ) -> None:
        """
        Append one JSON line to the audit file.
        status: "start" | "ok" | "error" | "skip"
        """
        if not self.enabled:
            return
        rec = {
            "ts": _now_iso(),
            "run_id": self.run_id,
            "action": action,
            "status": status,
            "params": params or {},
            "message": message or "",
        }
        line = json.dumps(rec, ensure_ascii=False)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def list_events(self, limit: int = 200) -> List[Dict[str, Any]]:
        if not self.enabled or not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
        events: List[Dict[str, Any]] = []
        for ln in lines[-limit:]:
            try:
                events.append(json.loads(ln))
            except json.JSONDecodeError:
                continue
        return events
