"""Implementation for the ``gwi create`` and ``gwi start`` commands."""

from __future__ import annotations

from ..lifecycle import CommandOutcome
from .resolve import build_orchestrator


def create_worktree(args: object) -> CommandOutcome:
    """Create the worktree for an issue, selecting one when no number is given.

    Args:
        args: CLI argument object with ``issue_number``,
            ``include_in_progress`` and ``machine`` attributes.

    Returns:
        ``CommandOutcome`` carrying the worktree path.

    Example:
        $ gwi create 42
    """
    orchestrator = build_orchestrator(machine=bool(getattr(args, "machine", False)))
    return orchestrator.create(
        getattr(args, "issue_number", None),
        include_in_progress=bool(getattr(args, "include_in_progress", False)),
    )


def start_worktree(args: object) -> CommandOutcome:
    """Select an open issue and create its worktree quietly."""
    orchestrator = build_orchestrator(machine=True)
    return orchestrator.create(
        None, include_in_progress=bool(getattr(args, "include_in_progress", False))
    )
