"""Worktree directory store: maps issue numbers to directories on disk.

Worktrees live under ``<worktree_base>/<host>/<org>/<repo>/<issue>-<slug>``.
The directory name doubles as the branch name; nothing else is persisted.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path

from . import log
from .git import RepositoryIdentity
from .models import GwiConfig

_ISSUE_PREFIX_RE = re.compile(r"^(\d+)-")


@dataclass(frozen=True)
class WorktreeRecord:
    issue_number: int
    branch: str
    path: Path


def base_path(config: GwiConfig, identity: RepositoryIdentity) -> Path:
    """Return the directory holding all worktrees of a repository.

    Example:
        >>> from gwi.git import RepositoryIdentity
        >>> cfg = GwiConfig(worktree_base="/wt")
        >>> base_path(cfg, RepositoryIdentity("github.com", "acme", "api")).as_posix()
        '/wt/github.com/acme/api'
    """
    return config.worktree_base / identity.host / identity.org / identity.repo


def issue_number_from_name(name: str) -> int | None:
    """Return the leading issue number of a worktree directory name.

    Example:
        >>> issue_number_from_name("42-fix-bug")
        42
        >>> issue_number_from_name("scratch") is None
        True
    """
    match = _ISSUE_PREFIX_RE.match(name)
    if not match:
        return None
    return int(match.group(1))


def find_by_issue(base: Path, number: int) -> Path | None:
    """Return the worktree directory for an issue, or ``None``.

    When several directories share the issue prefix, the lexicographically
    first one is returned and a warning names the others.
    """
    if not base.is_dir():
        return None
    matches = sorted(
        entry for entry in base.glob(f"{number}-*") if entry.is_dir()
    )
    if not matches:
        return None
    if len(matches) > 1:
        others = ", ".join(entry.name for entry in matches[1:])
        log.warning(
            f"multiple worktrees for issue #{number}; using {matches[0].name}"
            f" (also found: {others})"
        )
    return matches[0]


def list_worktrees(base: Path) -> list[Path]:
    """Return immediate subdirectories of ``base``; empty when it is missing."""
    if not base.is_dir():
        return []
    return sorted(entry for entry in base.iterdir() if entry.is_dir())


def records(base: Path) -> list[WorktreeRecord]:
    """Return records for every issue-numbered worktree under ``base``."""
    found: list[WorktreeRecord] = []
    for path in list_worktrees(base):
        number = issue_number_from_name(path.name)
        if number is None:
            continue
        found.append(WorktreeRecord(issue_number=number, branch=path.name, path=path))
    return found


def existing_issue_numbers(base: Path) -> set[int]:
    return {record.issue_number for record in records(base)}


def _normalize(path: Path) -> str:
    return os.path.normpath(os.path.abspath(str(path)))


def is_inside(worktree: Path, cwd: Path) -> bool:
    """Return whether ``cwd`` is ``worktree`` or nested inside it.

    Example:
        >>> is_inside(Path("/wt/42-x"), Path("/wt/42-x/src"))
        True
        >>> is_inside(Path("/wt/42-x"), Path("/wt/42-xy"))
        False
    """
    root = _normalize(worktree)
    current = _normalize(cwd)
    return current == root or current.startswith(root + os.sep)


def detect_issue_number(base: Path, cwd: Path) -> int | None:
    """Return the issue number of the worktree containing ``cwd``.

    Example:
        >>> detect_issue_number(Path("/wt/acme/api"), Path("/wt/acme/api/42-x/src"))
        42
        >>> detect_issue_number(Path("/wt/acme/api"), Path("/tmp")) is None
        True
    """
    root = _normalize(base)
    current = _normalize(cwd)
    if current == root or not current.startswith(root + os.sep):
        return None
    first = Path(os.path.relpath(current, root)).parts[0]
    return issue_number_from_name(first)
