from __future__ import annotations

import os
import threading
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from gitwatch.errors import ConfigError


class WatchConfig(BaseSettings):
    """
    Everything the watcher needs, fixed at startup.

    Values come from (highest first): explicit keyword arguments (the CLI),
    then GITWATCH_* environment variables and `.env`, then the defaults below.
    """

    repo: str = Field(min_length=1)
    branch: str = "master"
    dir: str = ""
    key: str = ""
    interval_seconds: int = Field(default=30, gt=0, le=int(threading.TIMEOUT_MAX))

    cmd: str = Field(min_length=1)
    args: List[str] = Field(default_factory=list)

    slack_webhook: str = ""
    slack_title: str = ""

    verbose: bool = False
    audit_log: str = ""
    shutdown_grace_seconds: float = Field(default=5.0, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="GITWATCH_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    @property
    def ref_name(self) -> str:
        return f"refs/heads/{self.branch}"

    @property
    def uses_temp_dir(self) -> bool:
        return self.dir == ""

    @property
    def command_line(self) -> str:
        return " ".join([self.cmd, *self.args])


def read_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML mapping of WatchConfig fields. Dashes in keys become underscores."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping, got {type(data).__name__}")
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def load_config(overrides: Optional[Dict[str, Any]] = None, config_file: Optional[str] = None) -> WatchConfig:
    """
    Merge YAML file values with explicit overrides (None means "not given")
    and build the immutable WatchConfig. Raises ConfigError on any problem.
    """
    values: Dict[str, Any] = {}
    config_file = config_file or os.getenv("GITWATCH_CONFIG", "")
    if config_file:
        values.update(read_config_file(config_file))
    for k, v in (overrides or {}).items():
        if v is not None:
            values[k] = v
    try:
        return WatchConfig(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"invalid configuration: {problems}") from e
