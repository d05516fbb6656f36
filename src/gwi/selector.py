"""Choose-one-of-N selection via fzf or a numbered prompt.

Options may be disabled (shown but not selectable) and annotated with a hint.
The fzf backend is used when ``fzf`` is on PATH; otherwise a numbered list is
rendered on stderr and a number is read from stdin. Only enabled options get
numbers.
"""

from __future__ import annotations

import re
import shutil
import sys
from dataclasses import dataclass
from typing import Sequence

from rich.text import Text

from . import exec as exec_util
from . import log
from .errors import SelectionError

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")
_DIM = "\x1b[2m"
_RESET = "\x1b[0m"
_YELLOW = "\x1b[33m"
_CYAN = "\x1b[36m"

FZF_ARGS = ("--height=~50%", "--reverse", "--ansi")


@dataclass(frozen=True)
class Option:
    label: str
    value: str
    disabled: bool = False
    hint: str = ""
    in_progress: bool = False


def strip_ansi(value: str) -> str:
    """Remove ANSI colour sequences.

    Example:
        >>> strip_ansi("\\x1b[33mhello\\x1b[0m")
        'hello'
    """
    return _ANSI_RE.sub("", value)


def has_fzf() -> bool:
    return shutil.which("fzf") is not None


def select(
    header: str,
    options: Sequence[Option],
    *,
    ctx: exec_util.CommandContext | None = None,
    use_fzf: bool | None = None,
) -> str:
    """Return the value of the option the operator picks.

    Raises:
        SelectionError: No options, no selection, or an invalid selection.
    """
    if not options:
        raise SelectionError("no options to select from")
    if use_fzf is None:
        use_fzf = has_fzf()
    if use_fzf:
        return select_with_fzf(header, options, ctx=ctx)
    return select_numbered(header, options)


def _fzf_label(option: Option) -> str:
    label = option.label
    highlighted = option.in_progress and not option.disabled
    if highlighted:
        label = f"{_YELLOW}{option.label}{_RESET}"
    if option.hint:
        if highlighted:
            label = f"{label} {_CYAN}({option.hint}){_RESET}"
        else:
            label = f"{option.label} {_YELLOW}({option.hint}){_RESET}"
    if option.disabled:
        return f"{_DIM}{label}{_RESET}"
    return label


def select_with_fzf(
    header: str,
    options: Sequence[Option],
    *,
    ctx: exec_util.CommandContext | None = None,
) -> str:
    enabled = [option for option in options if not option.disabled]
    disabled = [option for option in options if option.disabled]
    by_label: dict[str, str] = {}
    lines: list[str] = []
    for option in enabled:
        rendered = _fzf_label(option)
        lines.append(rendered)
        by_label[strip_ansi(rendered)] = option.value
    lines.extend(_fzf_label(option) for option in disabled)

    context = ctx or exec_util.DEFAULT_CONTEXT
    request = context.request(
        ["fzf", *FZF_ARGS, f"--header={header}"],
        input="\n".join(lines) + "\n",
        passthrough_stderr=True,
        timeout_seconds=None,
    )
    result = exec_util.run_with_runner(request, runner=context.runner)
    if result is None or result.returncode != 0:
        raise SelectionError("no selection made")
    chosen = strip_ansi(result.stdout.strip())
    if not chosen:
        raise SelectionError("no selection made")
    if chosen in by_label:
        return by_label[chosen]
    for option in enabled:
        if chosen == option.label or chosen.startswith(option.label + " "):
            return option.value
    raise SelectionError("invalid selection")


def numbered_choices(options: Sequence[Option]) -> dict[int, Option]:
    """Map display numbers to enabled options.

    Example:
        >>> choices = numbered_choices([Option("a", "1", disabled=True), Option("b", "2")])
        >>> {number: option.value for number, option in choices.items()}
        {1: '2'}
    """
    choices: dict[int, Option] = {}
    for option in options:
        if option.disabled:
            continue
        choices[len(choices) + 1] = option
    return choices


def _read_choice(prompt_text: str) -> str:
    sys.stderr.write(prompt_text)
    sys.stderr.flush()
    try:
        return input()
    except EOFError:
        return ""


def select_numbered(header: str, options: Sequence[Option]) -> str:
    choices = numbered_choices(options)
    console = log.console(stderr=True)
    console.print()
    console.print(Text(f"{header}:"))
    console.print()
    number = 1
    for option in options:
        hint = f" ({option.hint})" if option.hint else ""
        if option.disabled:
            console.print(Text(f"     {option.label}{hint}", style="dim"))
            continue
        line = Text(f"  {number}) ")
        line.append(f"{option.label}{hint}", style="yellow" if option.in_progress else "")
        console.print(line)
        number += 1
    if not choices:
        raise SelectionError("no selectable options available")
    console.print()
    raw = _read_choice(f"Select [1-{len(choices)}]: ").strip()
    if not raw:
        raise SelectionError("no selection made")
    try:
        choice = int(raw)
    except ValueError:
        raise SelectionError("invalid selection") from None
    if choice not in choices:
        raise SelectionError("invalid selection")
    return choices[choice].value
