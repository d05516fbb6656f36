from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable

from gwi import exec as exec_util


@dataclass
class _Response:
    prefix: tuple[str, ...]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    missing: bool = False
    contains: tuple[str, ...] = ()
    effect: Callable[[], None] | None = None

    def matches(self, argv: tuple[str, ...]) -> bool:
        if argv[: len(self.prefix)] != self.prefix:
            return False
        return all(item in argv for item in self.contains)

    @property
    def weight(self) -> int:
        return len(self.prefix) + len(self.contains)


@dataclass
class FakeRunner:
    """Command runner that records requests and replays canned results.

    The most specific match wins (longest argv prefix plus required
    arguments); unmatched commands succeed with empty output.
    """

    requests: list[exec_util.CommandRequest] = field(default_factory=list)
    responses: list[_Response] = field(default_factory=list)

    def on(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        missing: bool = False,
        contains: tuple[str, ...] = (),
        effect: Callable[[], None] | None = None,
    ) -> "FakeRunner":
        self.responses.append(
            _Response(
                tuple(prefix), returncode, stdout, stderr, missing, tuple(contains), effect
            )
        )
        return self

    def on_json(
        self, *prefix: str, payload: object, contains: tuple[str, ...] = ()
    ) -> "FakeRunner":
        return self.on(*prefix, stdout=json.dumps(payload), contains=contains)

    def run(self, request: exec_util.CommandRequest) -> exec_util.CommandResult | None:
        self.requests.append(request)
        best: _Response | None = None
        for response in self.responses:
            if not response.matches(request.argv):
                continue
            if best is None or response.weight >= best.weight:
                best = response
        if best is None:
            return exec_util.CommandResult(request.argv, 0, "", "")
        if best.effect is not None:
            best.effect()
        if best.missing:
            return None
        return exec_util.CommandResult(
            request.argv, best.returncode, best.stdout, best.stderr
        )

    @property
    def argvs(self) -> list[tuple[str, ...]]:
        return [request.argv for request in self.requests]

    def ran(self, *prefix: str) -> bool:
        return any(argv[: len(prefix)] == prefix for argv in self.argvs)

    def index_of(self, *prefix: str) -> int:
        for index, argv in enumerate(self.argvs):
            if argv[: len(prefix)] == prefix:
                return index
        raise AssertionError(f"command not run: {' '.join(prefix)}")
