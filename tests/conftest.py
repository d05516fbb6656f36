# ruff: noqa: E402

import builtins
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import gwi.exec as exec_util
import gwi.io as io
import gwi.log as gwi_log

from tests.gwi.helpers import FakeRunner


@pytest.fixture(autouse=True)
def _default_patches(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(io, "_use_questionary", lambda: False)
    monkeypatch.setattr(gwi_log, "_configured_level", None)
    monkeypatch.setattr(gwi_log, "_no_color_override", None)
    for name in ("GWI_LOG_LEVEL", "GWI_CONFIG", "GWI_VERBOSE", "GWI_AUTO_ACTIVATE"):
        monkeypatch.delenv(name, raising=False)

    def fail_input(prompt: str = "") -> str:
        raise AssertionError("prompted unexpectedly")

    monkeypatch.setattr(builtins, "input", fail_input)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def ctx(fake_runner: FakeRunner) -> exec_util.CommandContext:
    return exec_util.CommandContext(timeout_seconds=30, runner=fake_runner)
