"""Implementation for the ``gwi activate`` command."""

from __future__ import annotations

from pathlib import Path

from .. import git, hooks, paths
from ..errors import GwiError, NotFoundError
from .resolve import load_config


def run_activate(args: object) -> int:
    """Run the ``activate`` hook for the worktree in the working directory.

    Returns:
        The hook's exit status.

    Raises:
        NotFoundError: No executable ``activate`` hook exists.
    """
    settings = load_config()
    worktree = Path.cwd()
    try:
        identity = git.resolve_repo_identity(worktree)
    except GwiError:
        identity = None
    script = hooks.find_hook(hooks.HOOK_ACTIVATE, worktree, settings.hook_dir, identity)
    if script is None:
        global_hook = paths.global_hook_path(
            settings.hook_dir, "<org>", "<repo>", hooks.HOOK_ACTIVATE
        )
        raise NotFoundError(
            "No activate hook found",
            recovery_hint=(
                "Create one of:\n"
                f"  {paths.LOCAL_HOOKS_DIRNAME}/{hooks.HOOK_ACTIVATE}"
                " (in worktree or main repo)\n"
                f"  {global_hook}"
            ),
        )
    run = hooks.run_hook(hooks.HOOK_ACTIVATE, worktree, settings.hook_dir, identity)
    return run.returncode or 0
