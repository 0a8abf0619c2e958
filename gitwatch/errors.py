# gitwatch/errors.py
from __future__ import annotations


class GitWatchError(Exception):
    """Base class for errors that end the watch."""


class WorkdirError(GitWatchError):
    """The working directory could not be created or inspected."""


class AuthError(GitWatchError):
    """The private key for authenticated transport could not be loaded."""


class CloneError(GitWatchError):
    """The initial clone of the watched branch failed."""


class WorktreeError(GitWatchError):
    """The cloned working copy could not be opened (local state is broken)."""


class PullError(GitWatchError):
    """Fetching or fast-forwarding the watched branch failed."""


class ConfigError(GitWatchError):
    """Invalid or incomplete configuration; the watcher never starts."""
