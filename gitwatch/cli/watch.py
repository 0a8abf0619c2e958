# gitwatch/cli/watch.py
from __future__ import annotations
import argparse
import os
import sys
from typing import Any, Dict, List, Optional

from gitwatch import __version__
from gitwatch.errors import ConfigError
from gitwatch.lifecycle import run
from gitwatch.observability import build_logger
from gitwatch.settings import load_config


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gitwatch",
        description="Watch a git repo and execute a command on updates.",
        epilog="Options may also be set as GITWATCH_<NAME> environment variables, in .env, or in a YAML --config file.",
    )
    # None means "not given on the command line" so env/YAML values survive.
    p.add_argument("-v", "--verbose", action="store_true", default=None, help="verbose logging")
    p.add_argument("--config", default=os.getenv("GITWATCH_CONFIG", ""), help="YAML file with option values")
    p.add_argument("--repo", help="git repo to watch")
    p.add_argument("--interval-seconds", type=int, help="seconds gitwatch will wait between checks (default 30)")
    p.add_argument(
        "--dir",
        help="directory where the git repo will be cloned. If not provided, "
             "gitwatch will create a temporary directory that it will clean up when finished",
    )
    p.add_argument("--key", help="location of ssh private key")
    p.add_argument("--branch", help="git branch to clone and watch (default master)")
    p.add_argument("--slack-webhook", help="slack webhook URL to send notifications about invocations to")
    p.add_argument(
        "--slack-title",
        help="the title the slack webhook should report, a name that helps people identify where this process is running",
    )
    p.add_argument("--audit-log", help="append a JSON line per clone/pull/command event to this file")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("cmd", nargs="?", metavar="CMD", help="command to invoke")
    p.add_argument("args", nargs=argparse.REMAINDER, metavar="ARG", help="argument(s) to the command")
    return p


def _split_command(cmd: Optional[str], rest: List[str]) -> tuple[Optional[str], List[str]]:
    if cmd == "--":
        if not rest:
            return None, []
        cmd, rest = rest[0], rest[1:]
    if rest and rest[0] == "--":
        rest = rest[1:]
    return cmd, rest


def overrides_from_args(ns: argparse.Namespace) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "repo": ns.repo,
        "interval_seconds": ns.interval_seconds,
        "dir": ns.dir,
        "key": ns.key,
        "branch": ns.branch,
        "slack_webhook": ns.slack_webhook,
        "slack_title": ns.slack_title,
        "audit_log": ns.audit_log,
        "verbose": ns.verbose,
    }
    cmd, rest = _split_command(ns.cmd, list(ns.args or []))
    if cmd:
        out["cmd"] = cmd
        out["args"] = rest
    return out


def main(argv=None) -> int:
    p = build_parser()
    ns = p.parse_args(argv)

    try:
        config = load_config(overrides_from_args(ns), config_file=ns.config or None)
    except ConfigError as e:
        print(f"gitwatch: {e}", file=sys.stderr)
        return 2

    log = build_logger(config.verbose)
    log.debug("gitwatch %s watching %s (%s) every %ds", __version__, config.repo, config.branch, config.interval_seconds)
    return run(config, log)


if __name__ == "__main__":
    sys.exit(main())
