"""Implementation for the ``gwi init`` command.

The emitted shell function wraps the ``gwi`` executable so that commands
which move the operator (``cd``, ``main``, ``list``, ``start``, ``create``)
can change the calling shell's directory. Navigation commands call the hidden
path-printing variants; ``rm``, ``merge`` and ``pr`` stream their output and
follow a ``__GWI_CD_TO__:<path>`` line when one is printed.
"""

from __future__ import annotations

import os
from pathlib import Path

import shellingham

from .. import log
from ..errors import UserInputError
from ..io import say

RELOCATION_PREFIX = "__GWI_CD_TO__:"
SUPPORTED_SHELLS = ("zsh", "bash")
DEFAULT_SHELL = "zsh"

SHELL_INTEGRATION = """# gwi - Git Worktree Issue CLI shell integration
gwi() {
  local target output
  case "$1" in
    cd|main|list|start|create)
      local sub="$1"
      shift
      target=$(command gwi "_${sub}" "$@") || return $?
      if [[ -n "$target" && -d "$target" ]]; then
        cd "$target" || return $?
        if [[ "${GWI_AUTO_ACTIVATE:-0}" == "1" && ( "$sub" == "cd" || "$sub" == "list" ) ]]; then
          command gwi activate 2>/dev/null
        fi
      else
        echo "Not found" >&2
        return 1
      fi
      ;;
    rm|merge|pr)
      output=$(command gwi "$@")
      local rc=$?
      [[ -n "$output" ]] && printf '%s\\n' "$output" | grep -v "^__GWI_CD_TO__:"
      target=$(printf '%s\\n' "$output" | grep "^__GWI_CD_TO__:" | tail -n 1)
      target="${target#__GWI_CD_TO__:}"
      [[ -n "$target" && -d "$target" ]] && cd "$target"
      return $rc
      ;;
    *)
      command gwi "$@"
      ;;
  esac
}"""


def detect_shell() -> str:
    """Return the name of the invoking shell, falling back to ``$SHELL``."""
    try:
        name, _path = shellingham.detect_shell()
    except shellingham.ShellDetectionFailure:
        name = Path(os.environ.get("SHELL", "")).name
    name = name.lower()
    if name not in SUPPORTED_SHELLS:
        log.debug(f"unsupported shell {name or '(unknown)'}; using {DEFAULT_SHELL}", stderr=True)
        return DEFAULT_SHELL
    return name


def shell_integration(shell: str | None = None) -> str:
    """Return the shell function for ``shell`` (zsh and bash share one).

    Example:
        >>> shell_integration("bash").startswith("# gwi")
        True
    """
    name = shell.strip().lower() if shell else detect_shell()
    if name not in SUPPORTED_SHELLS:
        raise UserInputError(
            f"unsupported shell: {shell}",
            recovery_hint="Supported shells: " + ", ".join(SUPPORTED_SHELLS),
        )
    return SHELL_INTEGRATION


def print_shell_integration(args: object) -> None:
    say(shell_integration(getattr(args, "shell", None)))
