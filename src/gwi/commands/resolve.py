"""Shared config/repository resolution helpers for commands."""

from __future__ import annotations

from pathlib import Path

from .. import config, git, log
from .. import exec as exec_util
from ..lifecycle import Orchestrator
from ..models import GwiConfig
from ..reporter import InteractiveReporter, MachineReporter, Reporter


def load_config() -> GwiConfig:
    """Load configuration and apply its ``verbose`` flag to logging."""
    settings = config.load_config()
    if settings.verbose:
        log.enable_verbose()
    return settings


def reporter_for(*, machine: bool) -> Reporter:
    return MachineReporter() if machine else InteractiveReporter()


def build_orchestrator(*, machine: bool = False, cwd: Path | None = None) -> Orchestrator:
    """Resolve config and repository identity for the working directory.

    Args:
        machine: Use the stdout-clean reporter for shell-integration commands.
        cwd: Working directory; defaults to the process cwd.

    Returns:
        ``Orchestrator`` bound to the current repository. Its subprocesses
        share the running command's cancellation token.
    """
    settings = load_config()
    working_dir = cwd or Path.cwd()
    identity = git.resolve_repo_identity(working_dir)
    log.debug(f"Repository: {identity.host}/{identity.slug}", stderr=True)
    return Orchestrator(
        config=settings,
        identity=identity,
        reporter=reporter_for(machine=machine),
        ctx=exec_util.CommandContext(
            timeout_seconds=settings.command_timeout,
            cancel_token=exec_util.active_token(),
        ),
        cwd=working_dir,
    )
