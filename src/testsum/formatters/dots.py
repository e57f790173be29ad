"""Dots formatter: one character per test."""

from __future__ import annotations

from typing import TYPE_CHECKING

from testsum.formatters.base import EventFormatter
from testsum.models.event import Action

if TYPE_CHECKING:
    from testsum.models.event import TestEvent
    from testsum.models.execution import ExecutionState

_GLYPHS = {
    Action.PASS: "·",
    Action.FAIL: "✖",
    Action.SKIP: "↷",
}


class DotsFormatter(EventFormatter):
    """Print ``[pkg]`` when a package starts, then a glyph for each finished test."""

    @property
    def name(self) -> str:
        return "dots"

    def format(self, event: TestEvent, state: ExecutionState) -> str:
        if event.is_package_event:
            return ""

        if event.action is Action.RUN:
            pkg = state.package(event.package)
            # The event is already applied, so the first run brings the count to 1.
            if pkg is not None and pkg.run == 1:
                return f"[{self.relative(event.package)}]"
            return ""

        glyph = _GLYPHS.get(event.action) if isinstance(event.action, Action) else None
        if glyph is None:
            return ""
        return self.colorize(glyph, event.action)
