import logging
from typing import Any, Dict, Optional

import requests

from gitwatch.runner import CommandResult

COLOR_OK = "ok"
COLOR_FAILURE = "failure"
OUTPUT_FIELD_TITLE = "stdout and stderr"


def color_for(result: CommandResult) -> str:
    return COLOR_OK if result.ok else COLOR_FAILURE


def build_message(title: str, color: str, output: str) -> Dict[str, Any]:
    """Slack attachment-style payload: fallback, pretext, color, fields[{title, value}]."""
    return {
        "fallback": title,
        "pretext": title,
        "color": color,
        "fields": [
            {"title": OUTPUT_FIELD_TITLE, "value": f"```{output}```"},
        ],
    }


def post_message(webhook_url: str, payload: Dict[str, Any], log: logging.Logger, timeout: int = 30) -> bool:
    """
    POST the payload as JSON. Best-effort: never raises, returns True on HTTP 200.
    """
    try:
        resp = requests.post(
            webhook_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        log.warning("unable to send slack notification: %s", e)
        return False
    if resp.status_code != 200:
        log.warning("got non 200 from slack (%s): %s", resp.status_code, resp.text)
        return False
    return True


class SlackNotifier:
    """Reports each command invocation to a Slack incoming webhook."""

    def __init__(self, webhook_url: str, title: str, log: logging.Logger, timeout: int = 30) -> None:
        self.webhook_url = webhook_url
        self.title = title
        self.log = log
        self.timeout = timeout

    def notify(self, result: CommandResult) -> bool:
        payload = build_message(self.title, color_for(result), result.output)
        return post_message(self.webhook_url, payload, self.log, timeout=self.timeout)


def notifier_from_config(webhook_url: Optional[str], title: str, log: logging.Logger) -> Optional[SlackNotifier]:
    if not webhook_url:
        return None
    return SlackNotifier(webhook_url, title, log)
