"""Short formatters: a line per package, optionally a line per test."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from testsum.formatters.base import EventFormatter
from testsum.models.event import Action
from testsum.models.execution import PackageStatus, is_package_failure_output, terminal_lines

if TYPE_CHECKING:
    from testsum.models.event import TestEvent
    from testsum.models.execution import ExecutionState, PackageState

_TERMINAL_ACTIONS = (Action.PASS, Action.FAIL, Action.SKIP)

# "ok  \texample.com/pkg\t0.012s" and "FAIL\texample.com/pkg\t0.012s"
_STATUS_ELAPSED_RE = re.compile(r"\t(\d+(?:\.\d+)?)s\s*$")

_STATUS_GLYPHS = {
    PackageStatus.OK: ("✓", Action.PASS),
    PackageStatus.NO_TESTS: ("∅", Action.SKIP),
    PackageStatus.FAILED: ("✖", Action.FAIL),
    PackageStatus.BUILD_FAILED: ("✖", Action.FAIL),
}

_ACTION_GLYPHS = {
    Action.PASS: "✓",
    Action.FAIL: "✖",
    Action.SKIP: "∅",
}

_ACTION_WORDS = {
    Action.PASS: "PASS",
    Action.FAIL: "FAIL",
    Action.SKIP: "EMPTY",
}


def _format_elapsed(seconds: float) -> str:
    if round(seconds, 2) == 0:
        return ""
    return f" ({seconds:.2f}s)"


def _first_status_line_arrived(pkg: PackageState) -> bool:
    """Return True if the latest package-scope fragment completed the first status line."""
    fragments = pkg.output.get("", [])
    if not fragments:
        return False
    earlier = "".join(fragments[:-1])
    return not terminal_lines(earlier) and bool(terminal_lines(earlier + fragments[-1]))


def _status_line_elapsed(pkg: PackageState) -> float:
    """Elapsed seconds from the package status line, else the sum over recorded tests."""
    lines = terminal_lines("".join(pkg.output.get("", ())))
    match = _STATUS_ELAPSED_RE.search(lines[0]) if lines else None
    if match is not None:
        return float(match.group(1))
    return sum(case.elapsed for case in (*pkg.failed, *pkg.skipped))


class ShortFormatter(EventFormatter):
    """Print one line for each package when it finishes.

    A package finishes with its first status line (``ok``, ``?`` or
    ``FAIL``). A package-scope ``pass``, ``fail`` or ``skip`` only prints
    when no status line was seen, as for a bare build failure.
    """

    @property
    def name(self) -> str:
        return "short"

    def format(self, event: TestEvent, state: ExecutionState) -> str:
        if not event.is_package_event:
            return ""
        pkg = state.package(event.package)
        if pkg is None:
            return ""

        if event.action is Action.OUTPUT:
            if not _first_status_line_arrived(pkg):
                return ""
            elapsed = _status_line_elapsed(pkg)
        elif event.action in _TERMINAL_ACTIONS:
            if terminal_lines("".join(pkg.output.get("", ()))):
                return ""
            elapsed = event.elapsed
        else:
            return ""

        status = pkg.status
        if status is not None:
            glyph, color_action = _STATUS_GLYPHS[status]
        else:
            glyph, color_action = _ACTION_GLYPHS[event.action], event.action

        return (
            f"{self.colorize(glyph, color_action)}  "
            f"{self.relative(event.package)}{_format_elapsed(elapsed)}\n"
        )


class ShortVerboseFormatter(EventFormatter):
    """Print a line for each test and package, with output for failed tests."""

    @property
    def name(self) -> str:
        return "short-verbose"

    def format(self, event: TestEvent, state: ExecutionState) -> str:
        if is_package_failure_output(event):
            return event.output

        if event.action not in _TERMINAL_ACTIONS:
            return ""

        word = self.colorize(_ACTION_WORDS[event.action], event.action)
        path = self.relative(event.package)

        if event.is_package_event:
            return f"{word} {path}\n"

        test_line = f"{word} {path}.{event.test} {event.elapsed_formatted()}\n"
        if event.action is Action.FAIL:
            return "".join(state.output(event.package, event.test)) + test_line
        if event.action is Action.PASS:
            return test_line
        return ""
