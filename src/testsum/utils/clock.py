"""Time sources for measuring how long a test run takes."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current time in seconds."""

    def now(self) -> float: ...


class SystemClock:
    """Monotonic clock backed by :func:`time.monotonic`."""

    def now(self) -> float:
        return time.monotonic()

