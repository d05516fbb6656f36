from __future__ import annotations

from pathlib import Path

import pytest

import gwi.hooks as hooks
from gwi.git import RepositoryIdentity

IDENTITY = RepositoryIdentity("github.com", "acme", "api")


def _write_hook(path: Path, *, executable: bool = True) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(0o755 if executable else 0o644)
    return path


@pytest.fixture
def layout(tmp_path: Path, fake_runner) -> dict[str, Path]:
    worktree = tmp_path / "wt" / "42-x"
    main = tmp_path / "src" / "api"
    hook_dir = tmp_path / "hooks"
    worktree.mkdir(parents=True)
    main.mkdir(parents=True)
    fake_runner.on(
        "git", "worktree", "list", stdout=f"worktree {main}\nHEAD abc\n\n"
    )
    return {"worktree": worktree, "main": main, "hook_dir": hook_dir}


def test_local_hook_wins_over_main_and_global(layout: dict[str, Path], ctx) -> None:
    local = _write_hook(layout["worktree"] / ".gwi" / "create")
    _write_hook(layout["main"] / ".gwi" / "create")
    _write_hook(layout["hook_dir"] / "acme" / "api" / "create")

    found = hooks.find_hook(
        "create", layout["worktree"], layout["hook_dir"], IDENTITY, ctx=ctx
    )

    assert found == local


def test_main_worktree_hook_before_global(layout: dict[str, Path], ctx) -> None:
    shared = _write_hook(layout["main"] / ".gwi" / "activate")
    _write_hook(layout["hook_dir"] / "acme" / "api" / "activate")

    found = hooks.find_hook(
        "activate", layout["worktree"], layout["hook_dir"], IDENTITY, ctx=ctx
    )

    assert found == shared


def test_non_executable_hook_is_skipped(layout: dict[str, Path], ctx) -> None:
    _write_hook(layout["worktree"] / ".gwi" / "up", executable=False)
    global_hook = _write_hook(layout["hook_dir"] / "acme" / "api" / "up")

    found = hooks.find_hook("up", layout["worktree"], layout["hook_dir"], IDENTITY, ctx=ctx)

    assert found == global_hook


def test_global_hook_needs_identity(layout: dict[str, Path], ctx) -> None:
    _write_hook(layout["hook_dir"] / "acme" / "api" / "down")

    assert (
        hooks.find_hook("down", layout["worktree"], layout["hook_dir"], None, ctx=ctx)
        is None
    )


def test_missing_hook_is_a_no_op(layout: dict[str, Path], fake_runner, ctx) -> None:
    run = hooks.run_hook(
        "create", layout["worktree"], layout["hook_dir"], IDENTITY, ctx=ctx
    )

    assert run == hooks.HookRun(found=False)
    assert run.ok
    assert fake_runner.argvs == [("git", "worktree", "list", "--porcelain")]


def test_hook_runs_in_worktree(layout: dict[str, Path], fake_runner, ctx) -> None:
    script = _write_hook(layout["worktree"] / ".gwi" / "create")

    run = hooks.run_hook(
        "create",
        layout["worktree"],
        layout["hook_dir"],
        IDENTITY,
        ctx=ctx,
        stdout_to_stderr=True,
    )

    assert run.ok
    assert run.path == script
    request = fake_runner.requests[-1]
    assert request.argv == (str(script),)
    assert request.cwd == layout["worktree"]
    assert request.stdout_to_stderr is True
    assert request.timeout_seconds is None


def test_failing_hook_warns_and_returns(
    layout: dict[str, Path],
    fake_runner,
    ctx,
    capsys: pytest.CaptureFixture[str],
) -> None:
    script = _write_hook(layout["worktree"] / ".gwi" / "create")
    fake_runner.on(str(script), returncode=3)

    run = hooks.run_hook(
        "create", layout["worktree"], layout["hook_dir"], IDENTITY, ctx=ctx
    )

    assert run.found
    assert run.returncode == 3
    assert not run.ok
    assert "exit status 3" in capsys.readouterr().err
