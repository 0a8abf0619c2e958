import io
import json
import logging

from gitwatch.observability import AuditLog, build_logger


def test_build_logger_levels():
    out = io.StringIO()
    log = build_logger(verbose=False, stream=out)
    log.debug("hidden")
    log.info("shown")
    assert "hidden" not in out.getvalue()
    assert "INFO gitwatch: shown" in out.getvalue()

    log = build_logger(verbose=True, stream=out)
    assert log.level == logging.DEBUG
    assert len(log.handlers) == 1
    log.debug("now visible")
    assert "now visible" in out.getvalue()


def test_audit_log_disabled_without_path():
    audit = AuditLog("")
    audit.record(action="command", status="ok")
    assert not audit.enabled
    assert audit.list_events() == []


def test_audit_log_appends_json_lines(tmp_path):
    path = tmp_path / "logs" / "audit.jsonl"
    audit = AuditLog(str(path), run_id="run-1")
    audit.record(action="clone", status="ok", params={"branch": "main"})
    audit.record(action="command", status="error", message="exit 2")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["run_id"] == "run-1"
    assert first["params"] == {"branch": "main"}
    assert [e["status"] for e in audit.list_events(limit=1)] == ["error"]
