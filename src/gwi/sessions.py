"""Dev-server sessions: one tmux session per worktree directory.

``up`` starts a detached session and sources the ``up`` hook inside it so the
server inherits the operator's shell environment. ``down`` interrupts the
session, sources the ``down`` hook in the same environment, then kills the
session. ``logs`` attaches to it.
"""

from __future__ import annotations

import os
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from . import exec as exec_util
from . import hooks, log
from .errors import DependencyMissingError, ExternalCommandError, NotFoundError
from .git import RepositoryIdentity

HISTORY_LIMIT = "50000"
SHELL_INIT_DELAY_SECONDS = 0.3
INTERRUPT_DELAY_SECONDS = 0.1
DOWN_HOOK_GRACE_SECONDS = 1.0


def session_name(cwd: Path) -> str:
    """Return the tmux session name for a directory.

    Example:
        >>> session_name(Path("/wt/acme/api/42-login"))
        '42-login'
    """
    return cwd.name or "gwi"


def login_shell_name() -> str:
    shell = os.environ.get("SHELL", "")
    if Path(shell).name == "zsh":
        return "zsh"
    return "bash"


def source_command(script: Path, *, strict: bool = True) -> str:
    """Return the shell line that loads direnv and sources ``script``.

    Example:
        >>> source_command(Path("/r/.gwi/up"), strict=True).endswith('source "/r/.gwi/up"')
        True
    """
    export = f'eval "$(direnv export {login_shell_name()})"'
    if strict:
        return f'{export} && source "{script}"'
    return f'{export} 2>/dev/null; source "{script}"'


@dataclass
class TmuxSession:
    """A named tmux session rooted at a worktree."""

    cwd: Path
    hook_dir: Path
    identity: RepositoryIdentity | None = None
    ctx: exec_util.CommandContext = field(default_factory=exec_util.CommandContext)
    sleep: Callable[[float], None] = time.sleep

    @property
    def name(self) -> str:
        return session_name(self.cwd)

    def _tmux(self, *args: str) -> exec_util.CommandResult | None:
        return self.ctx.run(["tmux", *args], cwd=self.cwd)

    def _tmux_ok(self, *args: str) -> bool:
        result = self._tmux(*args)
        return result is not None and result.returncode == 0

    def ensure_tmux(self, command: str) -> None:
        if shutil.which("tmux") is None:
            raise DependencyMissingError(
                f"tmux is required for 'gwi {command}'",
                recovery_hint="Install tmux with your package manager (e.g. brew install tmux).",
            )

    def exists(self) -> bool:
        return self._tmux_ok("has-session", "-t", self.name)

    def up(self) -> bool:
        """Start the session; returns ``False`` when it was already running."""
        self.ensure_tmux("up")
        if self.exists():
            return False
        script = hooks.find_hook(
            hooks.HOOK_UP, self.cwd, self.hook_dir, self.identity, ctx=self.ctx
        )
        if script is None:
            raise NotFoundError(
                "No 'up' hook found.",
                recovery_hint="Create .gwi/up with your server start command.",
            )
        log.info(f"Starting server in tmux session: {self.name}")
        if not self._tmux_ok("new-session", "-d", "-s", self.name, "-c", str(self.cwd)):
            raise ExternalCommandError(f"failed to start tmux session: {self.name}")
        # keep the pane around after the server exits so logs stay readable
        self._tmux("set-option", "-t", self.name, "remain-on-exit", "on")
        self._tmux("set-option", "-g", "mouse", "on")
        self._tmux("set-option", "-t", self.name, "history-limit", HISTORY_LIMIT)
        self.sleep(SHELL_INIT_DELAY_SECONDS)
        if not self._tmux_ok("send-keys", "-t", self.name, source_command(script), "Enter"):
            raise ExternalCommandError("failed to run up script")
        return True

    def down(self) -> None:
        self.ensure_tmux("down")
        if not self.exists():
            raise NotFoundError(f"No session '{self.name}' running")
        script = hooks.find_hook(
            hooks.HOOK_DOWN, self.cwd, self.hook_dir, self.identity, ctx=self.ctx
        )
        if script is not None:
            log.info("Running down hook...")
            self._tmux("send-keys", "-t", self.name, "C-c")
            self.sleep(INTERRUPT_DELAY_SECONDS)
            if not self._tmux_ok(
                "send-keys", "-t", self.name, source_command(script, strict=False), "Enter"
            ):
                log.warning("Failed to run down hook")
            self.sleep(DOWN_HOOK_GRACE_SECONDS)
        log.info(f"Stopping session: {self.name}")
        if not self._tmux_ok("kill-session", "-t", self.name):
            raise ExternalCommandError(f"failed to stop session: {self.name}")

    def attach(self) -> int:
        self.ensure_tmux("logs")
        if not self.exists():
            raise NotFoundError(
                f"No session '{self.name}' running", recovery_hint="Start with: gwi up"
            )
        log.info("Attaching to session (Ctrl+B D to detach)")
        result = self.ctx.run(
            ["tmux", "attach-session", "-t", self.name],
            cwd=self.cwd,
            capture_output=False,
            text=False,
            timeout_seconds=None,
        )
        if result is None:
            raise DependencyMissingError("missing required command: tmux")
        return result.returncode
