"""Command implementations exposed by the gwi CLI."""

from .activate import run_activate
from .clean import clean_branches
from .create import create_worktree, start_worktree
from .debug import debug_issue
from .merge import merge_issue
from .navigate import (
    change_directory,
    find_worktree,
    list_worktrees,
    main_worktree,
    select_worktree,
)
from .pr import submit_pr
from .remove import remove_worktree
from .server import server_down, server_logs, server_up
from .shell import print_shell_integration
from .status import show_status

__all__ = [
    "change_directory",
    "clean_branches",
    "create_worktree",
    "debug_issue",
    "find_worktree",
    "list_worktrees",
    "main_worktree",
    "merge_issue",
    "print_shell_integration",
    "remove_worktree",
    "run_activate",
    "select_worktree",
    "server_down",
    "server_logs",
    "server_up",
    "show_status",
    "start_worktree",
    "submit_pr",
]
