"""Implementation for the ``gwi merge`` command."""

from __future__ import annotations

from ..lifecycle import CommandOutcome
from .resolve import build_orchestrator


def merge_issue(args: object) -> CommandOutcome:
    """Merge an issue's work and clean up.

    Args:
        args: CLI argument object with ``issue_number`` and ``local``. With
            ``local`` the branch is merged into the main branch directly and
            no pull request is involved.

    Returns:
        ``CommandOutcome`` whose ``relocate_to`` is set when the caller was
        inside the removed worktree.
    """
    orchestrator = build_orchestrator()
    issue_number = getattr(args, "issue_number", None)
    if getattr(args, "local", False):
        return orchestrator.merge_local(issue_number)
    return orchestrator.merge(issue_number)
