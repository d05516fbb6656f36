"""Implementation for the ``gwi status`` command."""

from __future__ import annotations

from rich.text import Text

from .. import log
from ..lifecycle import WorktreeStatus
from .resolve import build_orchestrator


def _pr_label(row: WorktreeStatus) -> tuple[str, str] | None:
    if row.issue_number is None:
        return None
    if row.pr_lookup_failed:
        return "PR unknown", "dim"
    if row.pr_number is None:
        return "no PR", "yellow"
    state = (row.pr_state or "").upper()
    if state == "MERGED":
        return f"PR #{row.pr_number} merged", "green"
    if state == "CLOSED":
        return f"PR #{row.pr_number} closed", "red"
    return f"PR #{row.pr_number}", "blue"


def format_status_line(row: WorktreeStatus) -> Text:
    """Render one worktree row: dirty marker, name, counts and PR state.

    Example:
        >>> from pathlib import Path
        >>> row = WorktreeStatus(name="42-login", path=Path("/w/42-login"),
        ...                      issue_number=42, dirty=True, changes=3, ahead=1)
        >>> format_status_line(row).plain
        '  ● 42-login (3 changes) ↑1 no PR'
    """
    text = Text("  ")
    text.append("●", style="yellow" if row.dirty else "green")
    text.append(f" {row.name}")
    if row.dirty:
        text.append(f" ({row.changes} changes)")
    if row.ahead:
        text.append(f" ↑{row.ahead}")
    if row.behind:
        text.append(f" ↓{row.behind}")
    label = _pr_label(row)
    if label is not None:
        text.append(" ")
        text.append(label[0], style=label[1])
    return text


def show_status(args: object) -> None:
    """Show git and PR status for every worktree of the repository."""
    orchestrator = build_orchestrator()
    console = log.console(stderr=False)
    header = Text("gwi status", style="green")
    header.append(" for ", style="")
    header.append(orchestrator.repo_label, style="blue")
    console.print(header)
    console.print()
    rows = orchestrator.status()
    if not rows:
        console.print("No worktrees found.")
        return
    for row in rows:
        console.print(format_status_line(row))
