"""Aggregated state of a test run and the event state-transition function.

``ExecutionState`` is append-only. The stdout driver is its only writer of
package state (through :func:`apply`); the stderr collector only appends
to the errors list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

from testsum.models.event import Action, TestEvent
from testsum.utils.clock import SystemClock

if TYPE_CHECKING:
    from collections.abc import Mapping

    from testsum.utils.clock import Clock

logger = logging.getLogger(__name__)

# Compiler diagnostics on stderr start with a "# <package>" header line.
BUILD_HEADER_PREFIX = "# "

_BUILD_FAILED_SUFFIXES = ("[build failed]", "[setup failed]")


class PackageStatus(Enum):
    """Terminal state of a package, derived from its package-scope output."""

    OK = "ok"
    NO_TESTS = "no-tests"
    FAILED = "failed"
    BUILD_FAILED = "build-failed"


@dataclass(frozen=True)
class TestCase:
    """A failed or skipped test."""

    __test__ = False

    package: str
    test: str
    elapsed: float = 0.0
    """Elapsed seconds, truncated to milliseconds."""


@dataclass
class PackageState:
    """Everything recorded for a single package."""

    run: int = 0
    failed: list[TestCase] = field(default_factory=list)
    skipped: list[TestCase] = field(default_factory=list)
    output: dict[str, list[str]] = field(default_factory=dict)
    """Output fragments keyed by test name; ``""`` holds package-scope output."""

    package_failed: bool = False
    """Set when a package-scope ``fail`` event was seen."""

    @property
    def passed(self) -> int:
        """Number of passed tests, inferred from the other counters."""
        return self.run - len(self.failed) - len(self.skipped)

    @property
    def status(self) -> PackageStatus | None:
        return package_status(self)


def _line_status(line: str) -> PackageStatus | None:
    if line.startswith("ok "):
        return PackageStatus.OK
    if line.startswith("? "):
        return PackageStatus.NO_TESTS
    if line == "FAIL" or line.startswith("FAIL\t"):
        if line.rstrip().endswith(_BUILD_FAILED_SUFFIXES):
            return PackageStatus.BUILD_FAILED
        return PackageStatus.FAILED
    return None


def is_terminal_line(text: str) -> bool:
    """Return True if *text* is a package status line (``ok``, ``?`` or ``FAIL``)."""
    return _line_status(text.rstrip("\n")) is not None


def terminal_lines(text: str) -> list[str]:
    """Return the package status lines found in *text*, in order."""
    return [line for line in text.splitlines() if _line_status(line) is not None]


def package_status(pkg: PackageState) -> PackageStatus | None:
    """Return the terminal status of *pkg*, or None while it is still running.

    The last status line in the accumulated package-scope output wins. A
    package-scope ``fail`` without any status line is a build failure.
    """
    text = "".join(pkg.output.get("", ()))
    for line in reversed(text.splitlines()):
        status = _line_status(line)
        if status is not None:
            return status
    if pkg.package_failed:
        return PackageStatus.BUILD_FAILED
    return None


def is_package_failure_output(event: TestEvent) -> bool:
    """Return True for package-scope output that is not a framing line.

    Such output comes from a panic or ``os.Exit`` in ``init`` or ``TestMain``,
    or from a compiler error reported through the event stream.
    """
    if not event.is_package_event or event.action is not Action.OUTPUT:
        return False
    return not is_framing_line(event.output)


def is_framing_line(line: str) -> bool:
    """Return True for lines the runner prints around test output.

    These are ``PASS``, ``FAIL``, coverage reports and package status lines.
    """
    text = line.rstrip("\n")
    if text in ("PASS", "FAIL") or text.startswith("coverage: "):
        return True
    return _line_status(text) is not None


def _test_case(event: TestEvent) -> TestCase:
    return TestCase(
        package=event.package,
        test=event.test,
        elapsed=int(event.elapsed * 1000) / 1000,
    )


class ExecutionState:
    """Cumulative state of one test run.

    Args:
        clock: Time source used for the start time and :meth:`elapsed`.
            Defaults to a monotonic system clock.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock or SystemClock()
        self.started = self._clock.now()
        self._packages: dict[str, PackageState] = {}
        self._errors: list[str] = []

    @property
    def packages(self) -> Mapping[str, PackageState]:
        """Read-only view of package state, in first-seen order."""
        return MappingProxyType(self._packages)

    def package(self, name: str) -> PackageState | None:
        return self._packages.get(name)

    def ensure_package(self, name: str) -> PackageState:
        """Return the state for *name*, creating it on first reference."""
        pkg = self._packages.get(name)
        if pkg is None:
            pkg = PackageState()
            self._packages[name] = pkg
        return pkg

    def output(self, package: str, test: str) -> list[str]:
        """Return the buffered output fragments for a test (``""`` for the package)."""
        pkg = self._packages.get(package)
        if pkg is None:
            return []
        return list(pkg.output.get(test, ()))

    def add_error(self, line: str) -> bool:
        """Record a stderr line unless it is a build header.

        Returns:
            True if the line was recorded.
        """
        if line.startswith(BUILD_HEADER_PREFIX):
            return False
        self._errors.append(line)
        return True

    def errors(self) -> list[str]:
        return list(self._errors)

    def elapsed(self) -> float:
        """Seconds since the run started, measured with the injected clock."""
        return self._clock.now() - self.started

    def total(self) -> int:
        """Number of tests run across all packages."""
        return sum(pkg.run for pkg in self._packages.values())

    def failed(self) -> list[TestCase]:
        """Failed tests, ordered by package name then arrival."""
        return [case for name in sorted(self._packages) for case in self._packages[name].failed]

    def skipped(self) -> list[TestCase]:
        """Skipped tests, ordered by package name then arrival."""
        return [case for name in sorted(self._packages) for case in self._packages[name].skipped]

    def package_failures(self) -> list[TestCase]:
        """Packages that failed without any failing test (build errors, panics in init)."""
        return [
            TestCase(package=name, test="")
            for name in sorted(self._packages)
            if self._packages[name].package_failed and not self._packages[name].failed
        ]

    def passed_count(self) -> int:
        return self.total() - len(self.failed()) - len(self.skipped())


def apply(state: ExecutionState, event: TestEvent) -> PackageState:
    """Apply *event* to *state* and return the affected package state."""
    pkg = state.ensure_package(event.package)
    action = event.action

    if action in (Action.OUTPUT, Action.BENCH):
        pkg.output.setdefault(event.test, []).append(event.output)
        return pkg

    if event.is_package_event:
        if action is Action.FAIL:
            pkg.package_failed = True
        return pkg

    if action is Action.RUN:
        pkg.run += 1
    elif action is Action.FAIL:
        pkg.failed.append(_test_case(event))
    elif action is Action.SKIP:
        pkg.skipped.append(_test_case(event))
    elif not isinstance(action, Action):
        logger.debug("Ignoring unknown action %r for %s %s", action, event.package, event.test)
    return pkg
