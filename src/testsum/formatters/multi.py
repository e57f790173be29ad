"""Compose several formatters into one."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from testsum.formatters.base import EventFormatter, FormatterError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from testsum.models.event import TestEvent
    from testsum.models.execution import ExecutionState

logger = logging.getLogger(__name__)


class MultiFormatter(EventFormatter):
    """Run every wrapped formatter on each event and join their output.

    A failing formatter does not stop the others; all failures are raised
    together as one :class:`FormatterError` whose ``text`` holds the output
    of the formatters that succeeded.
    """

    def __init__(self, formatters: Sequence[EventFormatter]) -> None:
        super().__init__()
        if not formatters:
            raise ValueError("MultiFormatter needs at least one formatter")
        self.formatters = list(formatters)

    @property
    def name(self) -> str:
        return ",".join(f.name for f in self.formatters)

    def format(self, event: TestEvent, state: ExecutionState) -> str:
        parts: list[str] = []
        errors: list[Exception] = []
        for formatter in self.formatters:
            try:
                parts.append(formatter.format(event, state))
            except Exception as exc:
                logger.debug("Formatter %s failed: %s", formatter.name, exc)
                errors.append(exc)

        text = "".join(parts)
        if errors:
            raise FormatterError.for_event(event, errors, text=text)
        return text
