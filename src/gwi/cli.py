"""Command-line entry point for gwi.

Commands that move the operator return a ``CommandOutcome``; this module
encodes it for the shell function installed by ``gwi init``. Interactive
commands print ``__GWI_CD_TO__:<path>`` and the hidden ``_``-prefixed
commands print a bare path and nothing else on stdout.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Callable, Optional

import typer

from . import __version__
from . import exec as exec_util
from . import log as gwi_log
from .commands import activate as activate_cmd
from .commands import clean as clean_cmd
from .commands import create as create_cmd
from .commands import debug as debug_cmd
from .commands import merge as merge_cmd
from .commands import navigate as navigate_cmd
from .commands import pr as pr_cmd
from .commands import remove as remove_cmd
from .commands import server as server_cmd
from .commands import shell as shell_cmd
from .commands import status as status_cmd
from .errors import CancelledError, GwiError, SelectionError
from .io import die, say
from .lifecycle import CommandOutcome

app = typer.Typer(
    name="gwi",
    help="Git Worktree Issue workflow: one worktree per GitHub issue.",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        say(f"gwi {__version__}")
        raise typer.Exit()


def _log_level_callback(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in gwi_log.LEVEL_NAMES:
        raise typer.BadParameter(
            "expected one of: " + ", ".join(gwi_log.LEVEL_NAMES)
        )
    return normalized


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the gwi version and exit.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        callback=_log_level_callback,
        help="Log level: trace, debug, info, success, warning, error.",
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable colored output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug output."
    ),
) -> None:
    if log_level:
        gwi_log.set_level(log_level)
    if no_color:
        gwi_log.set_no_color(True)
    if verbose:
        gwi_log.enable_verbose()


def emit_outcome(outcome: CommandOutcome | None, *, machine: bool = False) -> None:
    """Write a command outcome to stdout for the shell integration.

    Example:
        >>> from pathlib import Path
        >>> emit_outcome(CommandOutcome(relocate_to=Path("/w/42-x")))
        __GWI_CD_TO__:/w/42-x
        >>> emit_outcome(CommandOutcome(path=Path("/w/42-x")), machine=True)
        /w/42-x
    """
    if outcome is None:
        return
    if machine:
        if outcome.path is not None:
            say(str(outcome.path))
        return
    if outcome.relocate_to is not None:
        say(f"{shell_cmd.RELOCATION_PREFIX}{outcome.relocate_to}")


def _run(
    handler: Callable[[SimpleNamespace], object],
    args: SimpleNamespace,
    *,
    machine: bool = False,
) -> object:
    try:
        with exec_util.command_scope():
            return handler(args)
    except SelectionError as exc:
        if machine:
            raise typer.Exit(1) from exc
        die(exc.message)
    except CancelledError as exc:
        die(exc.message, code=130)
    except GwiError as exc:
        die(exc.message, hint=exc.recovery_hint)
    except KeyboardInterrupt as exc:
        raise typer.Exit(130) from exc


def _run_outcome(
    handler: Callable[[SimpleNamespace], object],
    args: SimpleNamespace,
    *,
    machine: bool = False,
) -> None:
    outcome = _run(handler, args, machine=machine)
    emit_outcome(outcome if isinstance(outcome, CommandOutcome) else None, machine=machine)


def _exit_with(code: object) -> None:
    if isinstance(code, int) and code != 0:
        raise typer.Exit(code)


@app.command("create")
def create(
    issue_number: Optional[int] = typer.Argument(None, help="GitHub issue number."),
    include_in_progress: bool = typer.Option(
        False,
        "--include-in-progress",
        help="Allow selecting issues already in progress.",
    ),
) -> None:
    """Create a worktree for a GitHub issue."""
    args = SimpleNamespace(
        issue_number=issue_number,
        include_in_progress=include_in_progress,
        machine=False,
    )
    _run_outcome(create_cmd.create_worktree, args)


@app.command("_create", hidden=True)
def create_machine(
    issue_number: Optional[int] = typer.Argument(None),
    include_in_progress: bool = typer.Option(False, "--include-in-progress"),
) -> None:
    args = SimpleNamespace(
        issue_number=issue_number,
        include_in_progress=include_in_progress,
        machine=True,
    )
    _run_outcome(create_cmd.create_worktree, args, machine=True)


@app.command("start")
def start(
    include_in_progress: bool = typer.Option(
        False,
        "--include-in-progress",
        help="Allow selecting issues already in progress.",
    ),
) -> None:
    """Select an open issue and create its worktree."""
    args = SimpleNamespace(include_in_progress=include_in_progress)
    _run_outcome(create_cmd.start_worktree, args, machine=True)


@app.command("_start", hidden=True)
def start_machine(
    include_in_progress: bool = typer.Option(False, "--include-in-progress"),
) -> None:
    args = SimpleNamespace(include_in_progress=include_in_progress)
    _run_outcome(create_cmd.start_worktree, args, machine=True)


@app.command("pr")
def pr(
    issue_number: Optional[int] = typer.Argument(
        None, help="Issue number (default: worktree in the current directory)."
    ),
) -> None:
    """Push the branch, open a pull request and remove the worktree."""
    _run_outcome(pr_cmd.submit_pr, SimpleNamespace(issue_number=issue_number))


@app.command("merge")
def merge(
    issue_number: Optional[int] = typer.Argument(None, help="Issue number."),
    local: bool = typer.Option(
        False, "--local", help="Merge into the main branch locally without a PR."
    ),
) -> None:
    """Merge the issue's PR and clean up worktree and branches."""
    args = SimpleNamespace(issue_number=issue_number, local=local)
    _run_outcome(merge_cmd.merge_issue, args)


@app.command("rm")
def rm(
    issue_number: Optional[int] = typer.Argument(None, help="Issue number."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Remove even with uncommitted changes."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
    delete_branch: bool = typer.Option(
        False, "--delete-branch", "-D", help="Also delete local and remote branches."
    ),
) -> None:
    """Remove an issue worktree."""
    args = SimpleNamespace(
        issue_number=issue_number, force=force, yes=yes, delete_branch=delete_branch
    )
    _run_outcome(remove_cmd.remove_worktree, args)


@app.command("status")
def status() -> None:
    """Show git and PR status of every worktree."""
    _run(status_cmd.show_status, SimpleNamespace())


@app.command("list")
def list_() -> None:
    """List the main worktree and all issue worktrees."""
    _run(navigate_cmd.list_worktrees, SimpleNamespace())


@app.command("ls", hidden=True)
def ls() -> None:
    _run(navigate_cmd.list_worktrees, SimpleNamespace())


@app.command("_list", hidden=True)
def list_machine() -> None:
    _run_outcome(navigate_cmd.select_worktree, SimpleNamespace(), machine=True)


@app.command("cd")
def cd(
    pattern: Optional[str] = typer.Argument(None, help="Issue number or name fragment."),
) -> None:
    """Print the path of a worktree (use the shell function to change into it)."""
    _run_outcome(
        navigate_cmd.change_directory, SimpleNamespace(pattern=pattern), machine=True
    )


@app.command("_cd", hidden=True)
def cd_machine(pattern: Optional[str] = typer.Argument(None)) -> None:
    _run_outcome(navigate_cmd.find_worktree, SimpleNamespace(pattern=pattern), machine=True)


@app.command("main")
def main_() -> None:
    """Print the main worktree path."""
    _run_outcome(navigate_cmd.main_worktree, SimpleNamespace(), machine=True)


@app.command("_main", hidden=True)
def main_machine() -> None:
    _run_outcome(navigate_cmd.main_worktree, SimpleNamespace(), machine=True)


@app.command("clean")
def clean(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Prune stale worktrees and delete orphaned branches."""
    _run(clean_cmd.clean_branches, SimpleNamespace(yes=yes))


@app.command("activate")
def activate() -> None:
    """Run the activate hook for the current worktree."""
    _exit_with(_run(activate_cmd.run_activate, SimpleNamespace()))


@app.command("up")
def up() -> None:
    """Start the dev server in a tmux session."""
    _run(server_cmd.server_up, SimpleNamespace())


@app.command("down")
def down() -> None:
    """Stop the dev server tmux session."""
    _run(server_cmd.server_down, SimpleNamespace())


@app.command("logs")
def logs() -> None:
    """Attach to the dev server tmux session."""
    _exit_with(_run(server_cmd.server_logs, SimpleNamespace()))


@app.command("init")
def init(
    shell: Optional[str] = typer.Argument(None, help="Shell name: zsh or bash."),
) -> None:
    """Print shell integration code: eval "$(gwi init zsh)"."""
    _run(shell_cmd.print_shell_integration, SimpleNamespace(shell=shell))


@app.command("debug")
def debug(
    issue_number: int = typer.Argument(..., help="Issue number to test with."),
) -> None:
    """Diagnose the GitHub Projects integration for an issue."""
    _run(debug_cmd.debug_issue, SimpleNamespace(issue_number=issue_number))


def main() -> None:
    """Run the gwi CLI."""
    app()


if __name__ == "__main__":
    main()
