"""End-of-run summary: totals, skipped tests, failures and stderr errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from testsum.formatters.base import relative_package_path
from testsum.models.execution import is_framing_line

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import TextIO

    from testsum.models.execution import ExecutionState, TestCase

_RUN_LINE_PREFIXES = ("=== RUN ", "=== PAUSE ", "=== CONT ")
_FAIL_LINE_PREFIX = "--- FAIL: "
_SKIP_LINE_PREFIX = "--- SKIP: "


def pluralize(count: int, noun: str, plural: str | None = None) -> str:
    """Return ``"<count> <noun>"``, pluralized when count is not 1."""
    if count == 1:
        return f"{count} {noun}"
    return f"{count} {plural or noun + 's'}"


def format_duration(seconds: float) -> str:
    """Format seconds with millisecond precision and no trailing zeros (``34.123s``)."""
    text = f"{seconds:.3f}".rstrip("0").rstrip(".")
    return f"{text}s"


def _totals_line(execution: ExecutionState) -> str:
    failures = len(execution.failed()) + len(execution.package_failures())
    parts = [f"DONE {pluralize(execution.total(), 'test')}"]
    skipped = len(execution.skipped())
    if skipped:
        parts.append(f"{skipped} skipped")
    if failures:
        parts.append(pluralize(failures, "failure"))
    errors = len(execution.errors())
    if errors:
        parts.append(pluralize(errors, "error"))
    return ", ".join(parts) + f" in {format_duration(execution.elapsed())}"


def _is_skip_noise(line: str) -> bool:
    return line.startswith((*_RUN_LINE_PREFIXES, _SKIP_LINE_PREFIX))


def _is_fail_noise(line: str) -> bool:
    return line.startswith((*_RUN_LINE_PREFIXES, _FAIL_LINE_PREFIX))


def _write_cases(
    out: TextIO,
    execution: ExecutionState,
    header: str,
    cases: list[TestCase],
    is_noise: Callable[[str], bool],
    pkg_prefix: str,
) -> None:
    for case in cases:
        path = relative_package_path(case.package, pkg_prefix)
        # Package-scope output carries the runner's own PASS/FAIL and status lines.
        noise = is_noise if case.test else is_framing_line
        out.write(f"=== {header}: {path} {case.test} ({case.elapsed:.2f}s)\n")
        text = "".join(execution.output(case.package, case.test))
        for line in text.splitlines(keepends=True):
            if noise(line):
                continue
            out.write(line)
        out.write("\n")


def print_summary(out: TextIO, execution: ExecutionState, *, pkg_prefix: str = "") -> None:
    """Write the summary report for a finished *execution* to *out*.

    Sections appear in a fixed order (totals, skipped, failures, errors);
    empty sections are left out.
    """
    out.write(f"\n{_totals_line(execution)}\n")

    skipped = execution.skipped()
    if skipped:
        out.write("\n=== Skipped\n")
        _write_cases(out, execution, "SKIP", skipped, _is_skip_noise, pkg_prefix)

    failed = execution.package_failures() + execution.failed()
    if failed:
        failed.sort(key=lambda case: case.package)
        out.write("\n=== Failures\n")
        _write_cases(out, execution, "FAIL", failed, _is_fail_noise, pkg_prefix)

    errors = execution.errors()
    if errors:
        out.write("\n=== Errors\n")
        for line in errors:
            out.write(f"{line}\n")
    out.flush()
