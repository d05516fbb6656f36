"""Implementation for the ``gwi cd``, ``gwi list`` and ``gwi main`` commands.

The public commands print for a person; the hidden ``_cd``, ``_list`` and
``_main`` variants return a bare path for the shell function installed by
``gwi init``.
"""

from __future__ import annotations

from pathlib import Path

from rich.text import Text

from .. import git, log, worktrees
from ..errors import NotFoundError
from ..lifecycle import CommandOutcome
from .resolve import build_orchestrator

SHELL_INTEGRATION_HINT = 'Add shell integration to your shell config:\n  eval "$(gwi init zsh)"'


def find_worktree(args: object) -> CommandOutcome:
    """Resolve a worktree by issue number, name fragment or selection."""
    orchestrator = build_orchestrator(machine=True)
    path = orchestrator.find_worktree(getattr(args, "pattern", None))
    return CommandOutcome(path=path)


def change_directory(args: object) -> CommandOutcome:
    outcome = find_worktree(args)
    log.info("Changing directory requires the gwi shell function.", stderr=True)
    log.info(SHELL_INTEGRATION_HINT, stderr=True)
    return outcome


def main_worktree(args: object) -> CommandOutcome:
    """Return the main worktree of the current repository."""
    orchestrator = build_orchestrator(machine=True)
    path = git.main_worktree_path(orchestrator.cwd, ctx=orchestrator.ctx)
    if path is None:
        raise NotFoundError("Could not find main repository")
    return CommandOutcome(path=path)


def list_worktrees(args: object) -> None:
    """Display the main worktree and every issue worktree."""
    orchestrator = build_orchestrator()
    console = log.console(stderr=False)
    header = Text("Worktrees for ")
    header.append(orchestrator.repo_label, style="blue")
    header.append(":")
    console.print(header)
    console.print()
    main_path = git.main_worktree_path(orchestrator.cwd, ctx=orchestrator.ctx)
    if main_path is not None:
        line = Text("  ")
        line.append("main", style="green")
        line.append(f" ({main_path.name})")
        console.print(line)
    for path in worktrees.list_worktrees(orchestrator.base):
        console.print(Text(f"  {path.name}"))


def select_worktree(args: object) -> CommandOutcome:
    orchestrator = build_orchestrator(machine=True)
    path: Path = orchestrator.choose_worktree()
    return CommandOutcome(path=path)
