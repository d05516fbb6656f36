"""Implementation for the ``gwi pr`` command."""

from __future__ import annotations

from ..lifecycle import CommandOutcome
from .resolve import build_orchestrator


def submit_pr(args: object) -> CommandOutcome:
    """Push the issue branch, open a pull request and drop the worktree."""
    orchestrator = build_orchestrator()
    return orchestrator.submit(getattr(args, "issue_number", None))
