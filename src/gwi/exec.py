"""Subprocess helpers for running external commands.

Every external effect gwi has (git, gh, fzf, tmux, hook scripts) goes through
``CommandRequest`` and a ``CommandRunner``. Requests may carry a timeout and a
``CancellationToken``; a cancelled token stops further invocations.
"""

from __future__ import annotations

import signal
import subprocess
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Protocol

from . import log
from .errors import CancelledError, DependencyMissingError, ExternalCommandError


class CancellationToken:
    """Cooperative cancellation flag shared by one command invocation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError()


@dataclass(frozen=True)
class CommandRequest:
    """Typed command invocation request.

    ``capture_output`` captures both streams. ``passthrough_stderr`` leaves
    stderr attached to the terminal while stdout is still captured (used by
    fzf). ``stdout_to_stderr`` sends an uncaptured command's stdout to stderr
    so it cannot pollute a path printed for the shell wrapper.
    """

    argv: tuple[str, ...]
    cwd: Path | None = None
    env: Mapping[str, str] | None = None
    capture_output: bool = True
    text: bool = True
    timeout_seconds: float | None = None
    stdin: int | None = None
    input: str | None = None
    passthrough_stderr: bool = False
    stdout_to_stderr: bool = False
    cancel_token: CancellationToken | None = None


@dataclass(frozen=True)
class CommandResult:
    """Typed command execution result."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    """Runtime command-execution interface."""

    def run(self, request: CommandRequest) -> CommandResult | None: ...


class SubprocessCommandRunner:
    """Default command-runner adapter backed by subprocess."""

    def run(self, request: CommandRequest) -> CommandResult | None:
        run_kwargs: dict[str, object] = {
            "cwd": request.cwd,
            "env": request.env,
            "check": False,
        }
        if request.capture_output and request.passthrough_stderr:
            run_kwargs["stdout"] = subprocess.PIPE
            run_kwargs["text"] = request.text
        elif request.capture_output:
            run_kwargs["capture_output"] = True
            run_kwargs["text"] = request.text
        elif request.stdout_to_stderr:
            run_kwargs["stdout"] = sys.stderr
        if request.timeout_seconds is not None:
            run_kwargs["timeout"] = request.timeout_seconds
        if request.input is not None:
            run_kwargs["input"] = request.input
            run_kwargs["text"] = True
        elif request.stdin is not None:
            run_kwargs["stdin"] = request.stdin
        try:
            completed = subprocess.run(list(request.argv), **run_kwargs)
        except FileNotFoundError:
            return None
        except subprocess.TimeoutExpired as exc:
            stdout = (exc.stdout or "") if isinstance(exc.stdout, str) else ""
            stderr = (exc.stderr or "") if isinstance(exc.stderr, str) else ""
            return CommandResult(
                argv=request.argv,
                returncode=124,
                stdout=stdout,
                stderr=stderr,
                timed_out=True,
            )

        stdout = completed.stdout if isinstance(completed.stdout, str) else ""
        stderr = completed.stderr if isinstance(completed.stderr, str) else ""
        return CommandResult(
            argv=request.argv,
            returncode=completed.returncode,
            stdout=stdout,
            stderr=stderr,
        )


_DEFAULT_COMMAND_RUNNER: CommandRunner = SubprocessCommandRunner()


@dataclass(frozen=True)
class CommandContext:
    """Timeout, cancellation and runner shared by one top-level command.

    Adapters build their requests through ``request`` so every subprocess a
    command spawns sees the same token and default timeout. Interactive
    invocations pass ``timeout_seconds=None`` explicitly.
    """

    timeout_seconds: float | None = None
    cancel_token: CancellationToken | None = None
    runner: CommandRunner | None = None

    def request(
        self, argv: list[str] | tuple[str, ...], *, cwd: Path | None = None, **kwargs
    ) -> CommandRequest:
        kwargs.setdefault("timeout_seconds", self.timeout_seconds)
        return CommandRequest(
            argv=tuple(argv), cwd=cwd, cancel_token=self.cancel_token, **kwargs
        )

    def run(
        self, argv: list[str] | tuple[str, ...], *, cwd: Path | None = None, **kwargs
    ) -> CommandResult | None:
        return run_with_runner(self.request(argv, cwd=cwd, **kwargs), runner=self.runner)

    def run_checked(
        self, argv: list[str] | tuple[str, ...], *, cwd: Path | None = None, **kwargs
    ) -> CommandResult:
        return run_checked(self.request(argv, cwd=cwd, **kwargs), runner=self.runner)


DEFAULT_CONTEXT = CommandContext()


def run_with_runner(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult | None:
    """Execute a typed command request with the given runner.

    A cancelled token stops the request before it starts, and a result that
    completes after cancellation is discarded.
    """
    token = request.cancel_token
    if token is not None:
        token.raise_if_cancelled()
    active_runner = runner or _DEFAULT_COMMAND_RUNNER
    log.trace(f"$ {' '.join(request.argv)}", stderr=True)
    result = active_runner.run(request)
    if token is not None:
        token.raise_if_cancelled()
    return result


def missing_command_detail(argv: tuple[str, ...]) -> str:
    if not argv:
        return "missing required command"
    return f"missing required command: {argv[0]}"


def command_failure_detail(result: CommandResult) -> str:
    output = (result.stderr or result.stdout or "").strip()
    command_text = " ".join(result.argv)
    if result.timed_out:
        return f"command timed out: {command_text}"
    if output:
        return f"command failed: {command_text}\n{output}"
    return f"command failed: {command_text}"


def run_checked(
    request: CommandRequest, *, runner: CommandRunner | None = None
) -> CommandResult:
    """Run a request and raise a typed error unless it exits zero."""
    result = run_with_runner(request, runner=runner)
    if result is None:
        raise DependencyMissingError(missing_command_detail(request.argv))
    if result.returncode != 0:
        raise ExternalCommandError(
            command_failure_detail(result),
            stderr=result.stderr.strip() or None,
        )
    return result


_active_token: CancellationToken | None = None


def active_token() -> CancellationToken:
    """Return the running command's token, or a fresh one outside a command."""
    if _active_token is not None:
        return _active_token
    return CancellationToken()


@contextmanager
def command_scope() -> Iterator[CancellationToken]:
    """Own the cancellation token of one top-level command.

    SIGINT cancels the token before raising ``KeyboardInterrupt``, so worker
    threads and any clean-up that outlives the interrupt cannot start another
    subprocess.
    """
    global _active_token
    token = CancellationToken()
    outer_token = _active_token
    _active_token = token
    install = threading.current_thread() is threading.main_thread()
    previous_handler = signal.getsignal(signal.SIGINT) if install else None

    def _interrupt(signum, frame) -> None:
        token.cancel()
        raise KeyboardInterrupt

    if install:
        signal.signal(signal.SIGINT, _interrupt)
    try:
        yield token
    except KeyboardInterrupt:
        token.cancel()
        raise
    finally:
        _active_token = outer_token
        if install and previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)
