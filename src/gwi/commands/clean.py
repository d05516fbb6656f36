"""Implementation for the ``gwi clean`` command."""

from __future__ import annotations

from .. import git, log
from ..errors import CancelledError, GwiError
from ..io import confirm, say
from .resolve import build_orchestrator

_NOTHING_PRUNED = "nothing to prune"


def clean_branches(args: object) -> None:
    """Prune stale worktree metadata and delete orphaned local branches.

    A branch is orphaned when it has no worktree under the repository's
    worktree base and its ``origin`` counterpart is gone.

    Args:
        args: CLI argument object with a ``yes`` flag to skip confirmation.
    """
    orchestrator = build_orchestrator()
    cwd = orchestrator.cwd
    ctx = orchestrator.ctx

    log.info("Checking for orphaned worktrees...")
    output = git.prune_worktrees(cwd, ctx=ctx)
    if output and _NOTHING_PRUNED not in output:
        say(output)

    log.info("Checking for merged branches...")
    try:
        git.fetch_prune(cwd, ctx=ctx)
    except CancelledError:
        raise
    except GwiError as exc:
        log.warning(f"Failed to fetch: {exc.message}")

    branches = orchestrator.orphaned_branches()
    if not branches:
        log.success("No orphaned branches found.")
        return

    say("")
    say("Branches to clean up:")
    for branch in branches:
        say(f"  - {branch}")
    say("")
    if not getattr(args, "yes", False) and not confirm("Delete these branches?"):
        say("Aborted.")
        return
    for branch in branches:
        try:
            git.delete_branch(branch, cwd, ctx=ctx)
        except CancelledError:
            raise
        except GwiError as exc:
            log.warning(f"Failed to delete {branch}: {exc.message}")
            continue
        log.success(f"Deleted branch: {branch}")
