"""Helpers for building events and event streams in tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from testsum.models.event import Action, TestEvent
from testsum.models.execution import ExecutionState, apply

PKG = "example.com/project/pkg"
EMPTY_PKG = "example.com/project/empty"


class FakeClock:
    """Manually advanced clock for deterministic elapsed times."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*."""
        if seconds < 0:
            raise ValueError(f"Cannot advance clock backwards by {seconds}")
        self._now += seconds


def event_line(action: str, package: str = PKG, test: str = "", **fields: Any) -> str:
    """Return one ``go test -json`` line."""
    data: dict[str, Any] = {
        "Time": "2024-01-15T10:00:00.123456789Z",
        "Action": action,
        "Package": package,
    }
    if test:
        data["Test"] = test
    if "elapsed" in fields:
        data["Elapsed"] = fields["elapsed"]
    if "output" in fields:
        data["Output"] = fields["output"]
    return json.dumps(data) + "\n"


def make_event(
    action: Action | str,
    package: str = PKG,
    test: str = "",
    *,
    elapsed: float = 0.0,
    output: str = "",
) -> TestEvent:
    return TestEvent(action=action, package=package, test=test, elapsed=elapsed, output=output)


def make_stream(data: str | bytes) -> asyncio.StreamReader:
    """Return a StreamReader already holding *data* and EOF. Call inside a running loop."""
    reader = asyncio.StreamReader()
    reader.feed_data(data.encode("utf-8") if isinstance(data, str) else data)
    reader.feed_eof()
    return reader


def build_state(events: list[TestEvent], clock: FakeClock | None = None) -> ExecutionState:
    state = ExecutionState(clock=clock or FakeClock())
    for event in events:
        apply(state, event)
    return state


# A package with a pass, a failure (with output), and a skip, plus a package
# with no test files.
GO_TEST_JSON = "".join(
    [
        event_line("run", test="TestPass"),
        event_line("output", test="TestPass", output="=== RUN   TestPass\n"),
        event_line("output", test="TestPass", output="--- PASS: TestPass (0.00s)\n"),
        event_line("pass", test="TestPass", elapsed=0.001),
        event_line("run", test="TestFail"),
        event_line("output", test="TestFail", output="=== RUN   TestFail\n"),
        event_line("output", test="TestFail", output="    pkg_test.go:12: expected 1, got 0\n"),
        event_line("output", test="TestFail", output="--- FAIL: TestFail (0.01s)\n"),
        event_line("fail", test="TestFail", elapsed=0.012),
        event_line("run", test="TestSkip"),
        event_line("output", test="TestSkip", output="=== RUN   TestSkip\n"),
        event_line("output", test="TestSkip", output="--- SKIP: TestSkip (0.00s)\n"),
        event_line("output", test="TestSkip", output="    pkg_test.go:20: flaky\n"),
        event_line("skip", test="TestSkip", elapsed=0.0),
        event_line("output", output="FAIL\n"),
        event_line("output", output=f"FAIL\t{PKG}\t0.020s\n"),
        event_line("fail", elapsed=0.02),
        event_line(
            "output",
            package=EMPTY_PKG,
            output=f"?   \t{EMPTY_PKG}\t[no test files]\n",
        ),
        event_line("skip", package=EMPTY_PKG, elapsed=0.0),
    ]
)
