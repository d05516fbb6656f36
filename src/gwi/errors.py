"""Failure contracts for gwi workflow operations.

Operations return typed outcomes on success and raise ``GwiError`` on expected
input, precondition or external-command failures. Programmer bugs raise normal
exceptions. The CLI boundary catches ``GwiError`` and exits non-zero with the
message and optional recovery hint.
"""

from __future__ import annotations

from typing import Literal

GwiFailureCode = Literal[
    "user_input",
    "precondition_failed",
    "not_found",
    "dependency_missing",
    "external_command_failed",
    "cancelled",
    "no_selection",
]


class GwiError(Exception):
    """Expected failure: bad input, unmet precondition, or remote error."""

    def __init__(
        self,
        code: GwiFailureCode,
        message: str,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recovery_hint = recovery_hint


class UserInputError(GwiError):
    """Invalid user input such as a malformed issue number."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("user_input", message, recovery_hint=recovery_hint)


class PreconditionError(GwiError):
    """A precondition failed before any state was mutated."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("precondition_failed", message, recovery_hint=recovery_hint)


class NotFoundError(GwiError):
    """A worktree, issue, or pull request could not be found."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("not_found", message, recovery_hint=recovery_hint)


class DependencyMissingError(GwiError):
    """A required executable (git, gh, tmux) is not available."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("dependency_missing", message, recovery_hint=recovery_hint)


class ExternalCommandError(GwiError):
    """An external command (git, gh, tmux) exited non-zero."""

    def __init__(
        self,
        message: str,
        *,
        recovery_hint: str | None = None,
        stderr: str | None = None,
    ) -> None:
        super().__init__("external_command_failed", message, recovery_hint=recovery_hint)
        self.stderr = stderr


class CancelledError(GwiError):
    """The command context was cancelled before a subprocess could start."""

    def __init__(self, message: str = "operation cancelled") -> None:
        super().__init__("cancelled", message)


class SelectionError(GwiError):
    """The operator made no valid selection."""

    def __init__(self, message: str = "no selection made") -> None:
        super().__init__("no_selection", message)
