"""Console I/O helpers for user-facing messages and prompts.

Prompts are written to stderr so that stdout stays reserved for paths and
relocation lines consumed by the shell integration.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import questionary

from . import log


def _use_questionary() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def say(message: str) -> None:
    """Print a normal message to stdout.

    Args:
        message: Text to print.

    Example:
        >>> say("Hello")
        Hello
    """
    print(message)


def warn(message: str) -> None:
    """Print a warning message to stderr."""
    log.warning(message)


def die(message: str, code: int = 1, *, hint: str | None = None) -> NoReturn:
    """Print an error message (and optional hint) and exit.

    Args:
        message: Error message to display.
        code: Exit code to use.
        hint: Optional remediation text printed after the message.
    """
    log.error(message)
    if hint:
        print(hint, file=sys.stderr)
    sys.exit(code)


def _read_line(text: str) -> str:
    sys.stderr.write(text)
    sys.stderr.flush()
    try:
        return input()
    except EOFError:
        return ""


def confirm(text: str, default: bool = False) -> bool:
    """Prompt for a yes/no confirmation.

    Args:
        text: Prompt label shown to the user.
        default: Default answer when the user presses enter.

    Returns:
        ``True`` when the user confirms.
    """
    if _use_questionary():
        response = questionary.confirm(text, default=default).ask()
        return bool(response)
    suffix = "[Y/n]" if default else "[y/N]"
    response = _read_line(f"{text} {suffix}: ").strip().lower()
    if response == "":
        return default
    return response in {"y", "yes"}
