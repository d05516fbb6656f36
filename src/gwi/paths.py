"""Path helpers for locating gwi configuration and worktree directories."""

import os
from pathlib import Path

from platformdirs import user_config_dir

GWI_APP_NAME = "gwi"
CONFIG_FILENAME = "config.yaml"
HOOKS_DIRNAME = "hooks"
WORKTREES_DIRNAME = "worktrees"
LOCAL_HOOKS_DIRNAME = ".gwi"


def gwi_config_dir() -> Path:
    """Return the per-user gwi configuration directory.

    Example:
        >>> isinstance(gwi_config_dir(), Path)
        True
    """
    return Path(user_config_dir(GWI_APP_NAME))


def config_path() -> Path:
    """Return the config file path, honoring ``GWI_CONFIG`` when set."""
    override = os.environ.get("GWI_CONFIG", "").strip()
    if override:
        return Path(override).expanduser()
    return gwi_config_dir() / CONFIG_FILENAME


def default_hook_dir() -> Path:
    """Return the default global hook directory.

    Example:
        >>> default_hook_dir().name == HOOKS_DIRNAME
        True
    """
    return gwi_config_dir() / HOOKS_DIRNAME


def default_worktree_base() -> Path:
    """Return the default root under which worktrees are created.

    Example:
        >>> default_worktree_base().name == WORKTREES_DIRNAME
        True
    """
    return Path.home() / WORKTREES_DIRNAME


def local_hook_path(root: Path, hook: str) -> Path:
    """Return the repo-local hook path under ``root``.

    Example:
        >>> local_hook_path(Path("/tmp/wt"), "create").as_posix()
        '/tmp/wt/.gwi/create'
    """
    return root / LOCAL_HOOKS_DIRNAME / hook


def global_hook_path(hook_dir: Path, org: str, repo: str, hook: str) -> Path:
    """Return the global per-repository hook path.

    Example:
        >>> global_hook_path(Path("/h"), "acme", "api", "up").as_posix()
        '/h/acme/api/up'
    """
    return hook_dir / org / repo / hook
