"""Formatters that mimic plain ``go test`` output, plus a debug dump."""

from __future__ import annotations

from typing import TYPE_CHECKING

from testsum.formatters.base import EventFormatter, action_name
from testsum.models.event import Action
from testsum.models.execution import is_terminal_line

if TYPE_CHECKING:
    from testsum.models.event import TestEvent
    from testsum.models.execution import ExecutionState


class DebugFormatter(EventFormatter):
    """Print every field of every event, one line per event."""

    @property
    def name(self) -> str:
        return "debug"

    def format(self, event: TestEvent, state: ExecutionState) -> str:
        timestamp = int(event.time.timestamp()) if event.time else 0
        line = (
            f"{event.package} {event.test} {action_name(event)} "
            f"({event.elapsed:.3f}) [{timestamp}] {event.output}"
        )
        return line if line.endswith("\n") else line + "\n"


class StandardVerboseFormatter(EventFormatter):
    """Equivalent of ``go test -v``: the raw output of every test."""

    @property
    def name(self) -> str:
        return "standard-verbose"

    def format(self, event: TestEvent, state: ExecutionState) -> str:
        if event.is_package_event or event.action not in (Action.OUTPUT, Action.BENCH):
            return ""
        return event.output


class StandardQuietFormatter(EventFormatter):
    """Equivalent of ``go test``: only the package status lines."""

    @property
    def name(self) -> str:
        return "standard-quiet"

    def format(self, event: TestEvent, state: ExecutionState) -> str:
        if not event.is_package_event or event.action is not Action.OUTPUT:
            return ""
        if is_terminal_line(event.output):
            return event.output
        return ""
