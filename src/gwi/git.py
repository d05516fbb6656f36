"""Git helper functions used by gwi.

Read-only queries (status, ahead/behind, branch existence) degrade to a
falsy value when git fails so listings never crash. Operations that mutate
the repository raise ``ExternalCommandError`` with git's own output.
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from . import exec as exec_util
from . import log
from .errors import DependencyMissingError, ExternalCommandError, PreconditionError

DEFAULT_HOST = "github.com"

_GITHUB_RE = re.compile(r"github\.com[:/]([^/]+)/([^/.]+)(\.git)?$")
_PROXY_RE = re.compile(r"/git/([^/]+)/([^/.]+)(?:\.git)?$")
_GENERIC_RE = re.compile(r"[/:]([^/]+)/([^/.]+?)(?:\.git)?$")
_SCP_RE = re.compile(r"^(?P<user>[^@]+)@(?P<host>[^:/]+):(?P<path>.+)$")


@dataclass(frozen=True)
class RepositoryIdentity:
    """Host/org/repo namespace for worktree storage and hook lookup."""

    host: str
    org: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.org}/{self.repo}"


def strip_git_suffix(path: str) -> str:
    """Remove a trailing ``.git`` suffix from a path string.

    Example:
        >>> strip_git_suffix("example/repo.git")
        'example/repo'
    """
    normalized = path.strip().rstrip("/")
    if normalized.lower().endswith(".git"):
        return normalized[: -len(".git")]
    return normalized


def remote_host(url: str) -> str:
    """Return the lowercase host of a remote URL, or ``github.com``.

    Example:
        >>> remote_host("git@github.example.com:org/repo.git")
        'github.example.com'
        >>> remote_host("/srv/git/org/repo")
        'github.com'
    """
    raw = url.strip()
    scp_match = _SCP_RE.match(raw)
    if scp_match and "://" not in raw:
        return scp_match.group("host").lower()
    if "://" in raw:
        host = (urlparse(raw).hostname or "").lower()
        if host:
            return host
    return DEFAULT_HOST


def parse_remote_url(url: str) -> RepositoryIdentity:
    """Extract the repository identity from a remote URL.

    Supports SCP-style SSH URLs, HTTP(S) URLs and proxy-style
    ``/git/<org>/<repo>`` paths, with or without a trailing ``.git``.

    Raises:
        PreconditionError: When no org/repo pair can be extracted.

    Example:
        >>> parse_remote_url("git@github.com:acme/widgets.git")
        RepositoryIdentity(host='github.com', org='acme', repo='widgets')
        >>> parse_remote_url("http://proxy@mirror.local/git/acme/widgets").org
        'acme'
    """
    raw = url.strip()
    for pattern in (_GITHUB_RE, _PROXY_RE, _GENERIC_RE):
        match = pattern.search(raw)
        if match:
            return RepositoryIdentity(
                host=remote_host(raw), org=match.group(1), repo=match.group(2)
            )
    raise PreconditionError(f"could not parse GitHub org/repo from remote URL: {url}")


def _git_capture(
    args: list[str],
    *,
    cwd: Path | None = None,
    ctx: exec_util.CommandContext | None = None,
) -> exec_util.CommandResult | None:
    context = ctx or exec_util.DEFAULT_CONTEXT
    return context.run(["git", *args], cwd=cwd)


def _git_ok(
    args: list[str],
    *,
    cwd: Path | None = None,
    ctx: exec_util.CommandContext | None = None,
) -> bool:
    result = _git_capture(args, cwd=cwd, ctx=ctx)
    return result is not None and result.returncode == 0


def _git_checked(
    args: list[str],
    *,
    cwd: Path | None = None,
    ctx: exec_util.CommandContext | None = None,
    **kwargs,
) -> exec_util.CommandResult:
    context = ctx or exec_util.DEFAULT_CONTEXT
    return context.run_checked(["git", *args], cwd=cwd, **kwargs)


def origin_url(
    cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> str | None:
    """Return ``remote.origin.url`` or ``None`` outside a repository."""
    result = _git_capture(["config", "--get", "remote.origin.url"], cwd=cwd, ctx=ctx)
    if result is None or result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_repo_identity(
    cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> RepositoryIdentity:
    """Derive the repository identity of the current working tree.

    Raises:
        PreconditionError: Outside a repository with an ``origin`` remote.
    """
    url = origin_url(cwd, ctx=ctx)
    if not url:
        raise PreconditionError(
            "not in a git repository with origin remote",
            recovery_hint="Run gwi from inside a clone that has an 'origin' remote.",
        )
    return parse_remote_url(url)


def fetch(cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None) -> None:
    """Fetch from origin; raises on failure."""
    _git_checked(["fetch", "origin"], cwd=cwd, ctx=ctx)


def fetch_prune(
    cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> None:
    _git_checked(["fetch", "origin", "--prune"], cwd=cwd, ctx=ctx)


def main_worktree_path(
    cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> Path | None:
    """Return the main worktree path from ``git worktree list --porcelain``."""
    result = _git_capture(["worktree", "list", "--porcelain"], cwd=cwd, ctx=ctx)
    if result is None or result.returncode != 0:
        return None
    for line in result.stdout.splitlines():
        if line.startswith("worktree "):
            return Path(line[len("worktree ") :])
    return None


def branch_exists(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> bool:
    return _git_ok(
        ["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], cwd=cwd, ctx=ctx
    )


def remote_branch_exists(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> bool:
    return _git_ok(
        ["show-ref", "--verify", "--quiet", f"refs/remotes/origin/{branch}"],
        cwd=cwd,
        ctx=ctx,
    )


def delete_branch(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> None:
    _git_checked(["branch", "-D", branch], cwd=cwd, ctx=ctx)


def delete_remote_branch(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> None:
    _git_checked(["push", "origin", "--delete", branch], cwd=cwd, ctx=ctx)


def last_commit_message(
    ref: str | None = None,
    cwd: Path | None = None,
    *,
    ctx: exec_util.CommandContext | None = None,
) -> str | None:
    """Return the full message of the tip commit of ``ref`` (or HEAD)."""
    args = ["log", "-1", "--pretty=%B"]
    if ref:
        args.append(ref)
    result = _git_capture(args, cwd=cwd, ctx=ctx)
    if result is None or result.returncode != 0:
        return None
    return result.stdout.strip()


def local_branches(
    cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> list[str]:
    result = _git_capture(["branch", "--format=%(refname:short)"], cwd=cwd, ctx=ctx)
    if result is None or result.returncode != 0:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def status_short(path: Path, *, ctx: exec_util.CommandContext | None = None) -> str:
    """Return ``git status --short`` output, empty on error."""
    result = _git_capture(["status", "--short"], cwd=path, ctx=ctx)
    if result is None or result.returncode != 0:
        return ""
    return result.stdout.strip()


def has_uncommitted_changes(
    path: Path, *, ctx: exec_util.CommandContext | None = None
) -> bool:
    result = _git_capture(["status", "--porcelain"], cwd=path, ctx=ctx)
    if result is None or result.returncode != 0:
        return False
    return bool(result.stdout.strip())


def uncommitted_count(path: Path, *, ctx: exec_util.CommandContext | None = None) -> int:
    output = status_short(path, ctx=ctx)
    if not output:
        return 0
    return len(output.splitlines())


def ahead_behind(
    path: Path, branch: str, *, ctx: exec_util.CommandContext | None = None
) -> tuple[int, int] | None:
    """Return ``(ahead, behind)`` against ``origin/<branch>``, ``None`` on error."""
    result = _git_capture(
        ["rev-list", "--left-right", "--count", f"origin/{branch}...HEAD"],
        cwd=path,
        ctx=ctx,
    )
    if result is None or result.returncode != 0:
        return None
    parts = result.stdout.split()
    if len(parts) != 2:
        return (0, 0)
    try:
        behind, ahead = int(parts[0]), int(parts[1])
    except ValueError:
        return (0, 0)
    return (ahead, behind)


def _worktree_add(
    path: Path, args: list[str], *, ctx: exec_util.CommandContext | None
) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    context = ctx or exec_util.DEFAULT_CONTEXT
    request = context.request(
        ["git", "worktree", "add", str(path), *args],
        capture_output=False,
        text=False,
        stdout_to_stderr=True,
    )
    result = exec_util.run_with_runner(request, runner=context.runner)
    if result is None:
        raise DependencyMissingError(exec_util.missing_command_detail(request.argv))
    if result.returncode != 0:
        raise ExternalCommandError(
            f"failed to create worktree: {exec_util.command_failure_detail(result)}"
        )


def create_worktree(
    path: Path,
    branch: str,
    base_ref: str,
    *,
    ctx: exec_util.CommandContext | None = None,
) -> None:
    """Create ``path`` on a new ``branch`` cut from ``base_ref``."""
    _worktree_add(path, ["-b", branch, base_ref], ctx=ctx)


def create_worktree_from_branch(
    path: Path, branch: str, *, ctx: exec_util.CommandContext | None = None
) -> None:
    """Create ``path`` bound to an existing local ``branch``."""
    _worktree_add(path, [branch], ctx=ctx)


def create_worktree_from_remote(
    path: Path,
    branch: str,
    remote_ref: str | None = None,
    *,
    ctx: exec_util.CommandContext | None = None,
) -> None:
    """Create ``path`` on a local ``branch`` tracking ``origin/<branch>``."""
    _worktree_add(path, ["-b", branch, remote_ref or f"origin/{branch}"], ctx=ctx)


def remove_worktree(
    path: Path,
    force: bool = False,
    *,
    cwd: Path | None = None,
    ctx: exec_util.CommandContext | None = None,
) -> None:
    """Remove a worktree, deleting the directory directly if git refuses.

    Raises:
        ExternalCommandError: When git fails and the directory cannot be
            deleted either, or when git fails for a directory that is gone.
    """
    args = ["worktree", "remove", str(path)]
    if force:
        args.append("--force")
    result = _git_capture(args, cwd=cwd, ctx=ctx)
    if result is not None and result.returncode == 0:
        return
    detail = (
        exec_util.command_failure_detail(result)
        if result is not None
        else exec_util.missing_command_detail(("git",))
    )
    if not path.exists():
        raise ExternalCommandError(f"git worktree remove failed: {detail}")
    if not force and result is not None and has_uncommitted_changes(path, ctx=ctx):
        raise ExternalCommandError(
            f"git worktree remove failed: {detail}",
            stderr=result.stderr.strip() or None,
        )
    log.debug(f"git worktree remove failed for {path}; deleting directory", stderr=True)
    try:
        shutil.rmtree(path)
    except OSError as exc:
        raise ExternalCommandError(
            f"git worktree remove failed: {detail}, manual removal failed: {exc}"
        ) from exc


def prune_worktrees(
    cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> str:
    """Prune stale worktree metadata; failures are logged, never raised."""
    result = _git_capture(["worktree", "prune", "-v"], cwd=cwd, ctx=ctx)
    if result is None:
        log.warning("git worktree prune skipped: git not found")
        return ""
    output = (result.stdout + result.stderr).strip()
    if result.returncode != 0:
        log.warning(f"git worktree prune failed: {output or result.returncode}")
    return output


def push(path: Path, branch: str, *, ctx: exec_util.CommandContext | None = None) -> None:
    """Push ``branch`` to origin with upstream tracking."""
    context = ctx or exec_util.DEFAULT_CONTEXT
    request = context.request(
        ["git", "push", "-u", "origin", branch],
        cwd=path,
        capture_output=False,
        text=False,
        stdout_to_stderr=True,
    )
    result = exec_util.run_with_runner(request, runner=context.runner)
    if result is None:
        raise DependencyMissingError(exec_util.missing_command_detail(request.argv))
    if result.returncode != 0:
        raise ExternalCommandError(f"failed to push branch {branch}")


def checkout(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> None:
    _git_checked(["checkout", branch], cwd=cwd, ctx=ctx)


def pull(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> None:
    _git_checked(["pull", "origin", branch], cwd=cwd, ctx=ctx)


def merge_branch(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> None:
    """Merge ``branch`` into the checked-out branch with a merge commit."""
    _git_checked(["merge", "--no-ff", "--no-edit", branch], cwd=cwd, ctx=ctx)


def push_current(
    branch: str, cwd: Path | None = None, *, ctx: exec_util.CommandContext | None = None
) -> None:
    _git_checked(["push", "origin", branch], cwd=cwd, ctx=ctx)
