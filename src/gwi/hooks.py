"""Hook resolution and execution for worktree lifecycle events.

A hook is an executable file named after the event (``create``, ``activate``,
``up``, ``down``). The first executable found wins, searching the worktree's
``.gwi`` directory, the main worktree's ``.gwi`` directory, then
``<hook_dir>/<org>/<repo>``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from . import exec as exec_util
from . import git, log, paths
from .git import RepositoryIdentity

HOOK_CREATE = "create"
HOOK_ACTIVATE = "activate"
HOOK_UP = "up"
HOOK_DOWN = "down"


@dataclass(frozen=True)
class HookRun:
    found: bool
    path: Path | None = None
    returncode: int | None = None

    @property
    def ok(self) -> bool:
        return not self.found or self.returncode == 0


def is_executable(path: Path) -> bool:
    """Return whether ``path`` is a file with any execute bit set."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return path.is_file() and bool(mode & 0o111)


def hook_locations(
    hook: str,
    worktree: Path,
    hook_dir: Path,
    identity: RepositoryIdentity | None,
    *,
    main_worktree: Path | None = None,
) -> list[Path]:
    """Return the ordered candidate paths for a hook."""
    candidates = [paths.local_hook_path(worktree, hook)]
    if main_worktree is not None:
        candidates.append(paths.local_hook_path(main_worktree, hook))
    if identity is not None:
        candidates.append(
            paths.global_hook_path(hook_dir, identity.org, identity.repo, hook)
        )
    return candidates


def find_hook(
    hook: str,
    worktree: Path,
    hook_dir: Path,
    identity: RepositoryIdentity | None,
    *,
    ctx: exec_util.CommandContext | None = None,
) -> Path | None:
    """Return the first executable hook script, or ``None``."""
    main_worktree = git.main_worktree_path(worktree if worktree.is_dir() else None, ctx=ctx)
    for candidate in hook_locations(
        hook, worktree, hook_dir, identity, main_worktree=main_worktree
    ):
        if is_executable(candidate):
            return candidate
    return None


def run_hook(
    hook: str,
    worktree: Path,
    hook_dir: Path,
    identity: RepositoryIdentity | None,
    *,
    ctx: exec_util.CommandContext | None = None,
    stdout_to_stderr: bool = False,
) -> HookRun:
    """Run a hook with the worktree as cwd and the terminal attached.

    A missing hook is a no-op. A failing hook is reported as a warning and
    returned, never raised.
    """
    script = find_hook(hook, worktree, hook_dir, identity, ctx=ctx)
    if script is None:
        return HookRun(found=False)
    log.info(f"Running {hook} hook...", stderr=stdout_to_stderr)
    context = ctx or exec_util.DEFAULT_CONTEXT
    request = context.request(
        [str(script)],
        cwd=worktree,
        env=dict(os.environ),
        capture_output=False,
        text=False,
        stdout_to_stderr=stdout_to_stderr,
        timeout_seconds=None,
    )
    result = exec_util.run_with_runner(request, runner=context.runner)
    if result is None:
        log.warning(f"Hook could not be executed: {script}")
        return HookRun(found=True, path=script, returncode=127)
    if result.returncode != 0:
        log.warning(f"Hook exited with error: exit status {result.returncode}")
        return HookRun(found=True, path=script, returncode=result.returncode)
    log.success("Hook completed", stderr=stdout_to_stderr)
    return HookRun(found=True, path=script, returncode=0)
