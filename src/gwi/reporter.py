"""Output strategies for workflow operations.

``InteractiveReporter`` talks to a person: progress on stdout, prompts on
stderr. ``MachineReporter`` backs the hidden shell-integration commands whose
stdout must carry nothing but a path, so all chatter goes to stderr and an
existing worktree is returned instead of reported as an error.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from . import io, log
from .errors import PreconditionError


class Reporter(Protocol):
    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def detail(self, message: str) -> None: ...

    def confirm(self, message: str) -> bool: ...

    def existing_worktree(self, issue_number: int, path: Path) -> Path: ...


class InteractiveReporter:
    """Reporter for commands run directly by the operator."""

    def info(self, message: str) -> None:
        log.info(message)

    def success(self, message: str) -> None:
        log.success(message)

    def warn(self, message: str) -> None:
        io.warn(message)

    def detail(self, message: str) -> None:
        log.emit(log.LogLevel.INFO, f"  {message}", style="yellow")

    def confirm(self, message: str) -> bool:
        return io.confirm(message)

    def existing_worktree(self, issue_number: int, path: Path) -> Path:
        raise PreconditionError(
            f"Worktree for issue #{issue_number} already exists.\n\n  Path: {path}",
            recovery_hint=(
                f"Use 'gwi cd {issue_number}' to navigate to it, or"
                f" 'gwi rm {issue_number}' to remove it first."
            ),
        )


class MachineReporter:
    """Reporter for shell-integration commands; keeps stdout clean."""

    def info(self, message: str) -> None:
        log.info(message, stderr=True)

    def success(self, message: str) -> None:
        log.success(message, stderr=True)

    def warn(self, message: str) -> None:
        io.warn(message)

    def detail(self, message: str) -> None:
        log.emit(log.LogLevel.INFO, f"  {message}", style="yellow", stderr=True)

    def confirm(self, message: str) -> bool:
        return io.confirm(message)

    def existing_worktree(self, issue_number: int, path: Path) -> Path:
        return path
