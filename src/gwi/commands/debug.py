"""Implementation for the ``gwi debug`` command.

Walks through the GitHub Projects integration for one issue and reports each
step: configuration, ``gh`` authentication, board items, the status field and
whether the configured status values exist on it.
"""

from __future__ import annotations

import shutil

from .. import config, log
from .. import exec as exec_util
from ..errors import CancelledError, DependencyMissingError, GwiError
from ..github import GithubClient
from ..io import confirm, say
from ..projects import BoardSynchronizer, find_option
from .resolve import load_config


def _section(title: str) -> None:
    log.console(stderr=False).print(f"=== {title} ===", style="bold")


def debug_issue(args: object) -> None:
    """Diagnose board synchronisation for ``args.issue_number``."""
    settings = load_config()
    issue_number = int(getattr(args, "issue_number"))
    board = settings.github

    _section("Configuration")
    for key, value in config.describe(settings):
        say(f"{key}: {value}")
    say("")

    _section("GitHub CLI")
    gh_path = shutil.which("gh")
    if gh_path is None:
        raise DependencyMissingError("gh CLI not found in PATH")
    say(f"gh CLI path: {gh_path}")
    client = GithubClient(
        ctx=exec_util.CommandContext(
            timeout_seconds=settings.command_timeout,
            cancel_token=exec_util.active_token(),
        )
    )
    say("Auth status:")
    say(client.auth_status_output())
    say("")

    _section("Issue Information")
    say(f"Testing with issue #{issue_number}")
    say("")
    synchronizer = BoardSynchronizer(board, client=client)
    log.info("Getting project items...")
    items = synchronizer.project_items(issue_number)
    if not items:
        log.warning(f"Issue #{issue_number} is not in any GitHub Project!")
        say("")
        say("To fix this:")
        say("1. Go to your GitHub Project board")
        say("2. Add this issue to the project")
        say("3. Run this command again")
        return
    log.success(f"Found issue in {len(items)} project(s)")
    say("")

    wanted = (board.todo_value, board.in_progress_value, board.in_review_value, board.done_value)
    for index, item in enumerate(items, start=1):
        _section(f"Project {index}")
        say(f"Project: {item.project_title or '(untitled)'}")
        say(f"Item ID: {item.id}")
        say(f"Project ID: {item.project_id}")
        say("")
        log.info(f"Getting '{board.status_field_name}' field...")
        try:
            status = synchronizer.status_field(item.project_id, board.status_field_name)
        except CancelledError:
            raise
        except GwiError as exc:
            log.warning(f"Failed to get field: {exc.message}")
            names = [field.name for field in synchronizer.project_fields(item.project_id)]
            say("Available single-select fields: " + (", ".join(names) or "(none)"))
            continue
        log.success(f"Field ID: {status.id}")
        say(f"  Field name: {status.name}")
        say("  Available options:")
        for option in status.options:
            say(f"    - {option.name} (ID: {option.id})")
        say("")
        log.info("Checking status values...")
        for value in wanted:
            try:
                find_option(status, value)
            except GwiError:
                log.warning(f"'{value}' not found in options!")
            else:
                log.success(f"'{value}' exists")
        say("")

    _section("Test Update")
    if not confirm(
        f"Test updating issue #{issue_number} to '{board.in_progress_value}'?"
    ):
        say("Skipped update test.")
        return
    log.info("Updating issue status...")
    update = synchronizer.set_status(issue_number, board.in_progress_value)
    log.success(
        f"Issue #{issue_number} updated to '{board.in_progress_value}'"
        f" in {update.updated} project(s)"
    )
