"""Implementation for the ``gwi up``, ``gwi down`` and ``gwi logs`` commands."""

from __future__ import annotations

from pathlib import Path

from .. import git, log
from ..errors import GwiError
from ..sessions import TmuxSession
from .resolve import load_config


def _session() -> TmuxSession:
    settings = load_config()
    cwd = Path.cwd()
    try:
        identity = git.resolve_repo_identity(cwd)
    except GwiError:
        identity = None
    return TmuxSession(cwd=cwd, hook_dir=settings.hook_dir, identity=identity)


def server_up(args: object) -> None:
    """Start the dev server for the current worktree in a tmux session."""
    session = _session()
    if not session.up():
        log.info(f"Session '{session.name}' already running")
        log.info("Use 'gwi logs' to attach or 'gwi down' to stop")
        return
    log.success("Server started")
    log.info("  gwi logs  - view output")
    log.info("  gwi down  - stop server")


def server_down(args: object) -> None:
    _session().down()
    log.success("Server stopped")


def server_logs(args: object) -> int:
    return _session().attach()
