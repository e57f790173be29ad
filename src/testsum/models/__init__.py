"""Data models for test events and aggregated execution state."""

from testsum.models.event import Action, TestEvent
from testsum.models.execution import (
    ExecutionState,
    PackageState,
    PackageStatus,
    TestCase,
    apply,
    is_framing_line,
    is_package_failure_output,
    is_terminal_line,
    package_status,
    terminal_lines,
)

__all__ = [
    "Action",
    "ExecutionState",
    "PackageState",
    "PackageStatus",
    "TestCase",
    "TestEvent",
    "apply",
    "is_framing_line",
    "is_package_failure_output",
    "is_terminal_line",
    "package_status",
    "terminal_lines",
]
