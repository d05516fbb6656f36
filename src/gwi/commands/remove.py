"""Implementation for the ``gwi rm`` command."""

from __future__ import annotations

from ..lifecycle import CommandOutcome
from .resolve import build_orchestrator


def remove_worktree(args: object) -> CommandOutcome:
    """Remove an issue worktree, optionally deleting its branches."""
    orchestrator = build_orchestrator()
    return orchestrator.remove(
        getattr(args, "issue_number", None),
        force=bool(getattr(args, "force", False)),
        yes=bool(getattr(args, "yes", False)),
        delete_branch=bool(getattr(args, "delete_branch", False)),
    )
